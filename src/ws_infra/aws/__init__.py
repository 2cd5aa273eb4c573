"""CloudFormation stack operations."""
