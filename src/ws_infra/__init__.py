"""
Provisioning tooling for the WebSocket chat API host.

This package contains:
- Settings and AWS client management
- CloudFormation template and parameters handling
- Stack deploy, delete and status operations
- The ws-infra command-line tools
"""

__version__ = "0.1.0"
