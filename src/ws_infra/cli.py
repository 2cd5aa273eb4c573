# cli.py
import logging
import re
import sys
from typing import Any, Dict, List

import click
from botocore.exceptions import BotoCoreError, ClientError

from ws_infra.aws.parameters import check_placeholder, load_parameters
from ws_infra.aws.stack import StackManager
from ws_infra.aws.template import load_template
from ws_infra.console import (
    RULE,
    print_banner,
    print_error,
    print_info,
    print_table,
    print_warning,
)
from ws_infra.errors import InfraError, StackNotFoundError, StackOperationError
from ws_infra.settings import get_settings

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])

DEPLOY_PROMPT = "Do you want to proceed with the deployment? (yes/no)"
DELETE_PROMPT = "Are you sure you want to delete the stack? Type 'DELETE' to confirm"
DELETE_TOKEN = "DELETE"

NEXT_STEPS = [
    "1. SSH into the instance using the command from outputs",
    "2. Clone your application repository",
    "3. Configure docker-compose.yml",
    "4. Run: docker-compose up -d",
]

AWS_ERRORS = (ClientError, BotoCoreError)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else get_settings().logging_level
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def deploy_confirmed(reply: str) -> bool:
    """Only 'yes' in any letter case confirms a deployment."""
    return re.fullmatch(r'[Yy][Ee][Ss]', reply.strip()) is not None


def delete_confirmed(reply: str) -> bool:
    """Only the exact token confirms a deletion."""
    return reply.strip() == DELETE_TOKEN


def ask(prompt: str) -> str:
    """Read a reply; a closed stdin counts as an empty reply."""
    try:
        return click.prompt(prompt, default='', show_default=False)
    except click.Abort:
        click.echo("")
        return ''


def print_failure_events(events: List[Dict[str, Any]]) -> None:
    if not events:
        print_info("Check the CloudFormation console for details")
        return
    print_info("Recent failure events:")
    print_table(
        ["Resource", "Status", "Reason"],
        [
            [e.get('LogicalResourceId', ''), e.get('ResourceStatus', ''), e.get('ResourceStatusReason', '')]
            for e in events
        ],
    )


def print_outputs(outputs: List[Dict[str, str]]) -> None:
    print_table(
        ["OutputKey", "OutputValue"],
        [[o['OutputKey'], o['OutputValue']] for o in outputs],
    )


@click.group(context_settings=CONTEXT_SETTINGS)
def cli():
    """WebSocket API infrastructure management CLI"""
    pass


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option('-r', '--region', default=None, help='AWS Region - default: us-east-1')
@click.option('-s', '--stack-name', default=None,
              help='CloudFormation stack name - default: ws-api-infrastructure')
@click.option('--template-file', default=None, help='Template file path')
@click.option('--parameters-file', default=None, help='Parameters file path')
@click.option('-v', '--verbose', is_flag=True, help='Verbose logging')
def deploy(region, stack_name, template_file, parameters_file, verbose):
    """Deploy WebSocket API infrastructure using CloudFormation"""
    settings = get_settings()
    configure_logging(verbose)

    region = region or settings.aws_region
    stack_name = stack_name or settings.stack_name
    template_file = template_file or settings.template_file
    parameters_file = parameters_file or settings.parameters_file

    # Preconditions are checked before any AWS call
    try:
        template_body = load_template(template_file)
        check_placeholder(parameters_file, settings.key_pair_placeholder)
        overrides = load_parameters(parameters_file)
    except InfraError as e:
        print_error(str(e))
        sys.exit(1)

    print_banner("WebSocket API Infrastructure Deployment", [
        ("Stack Name", stack_name),
        ("Region", region),
        ("Template", template_file),
        ("Parameters", parameters_file),
    ])

    if not deploy_confirmed(ask(DEPLOY_PROMPT)):
        print_warning("Deployment cancelled")
        sys.exit(0)

    try:
        manager = StackManager(stack_name, region=region, settings=settings)

        print_info("Validating CloudFormation template...")
        validation = manager.validate(template_body)
        print_info("Template validation successful")

        print_info(f"Deploying CloudFormation stack: {stack_name}")
        result = manager.deploy(
            template_body,
            overrides,
            capabilities=settings.capabilities,
            template_keys=validation['parameters'],
        )
    except StackOperationError as e:
        print_error("Stack deployment failed!")
        print_error(str(e))
        print_failure_events(e.events)
        sys.exit(1)
    except InfraError as e:
        print_error(str(e))
        sys.exit(1)
    except AWS_ERRORS as e:
        logger.debug("Deployment call failed", exc_info=True)
        print_error("Stack deployment failed!")
        print_error(str(e))
        sys.exit(1)

    if result.changed:
        print_info("Stack deployed successfully!")
    else:
        print_info(f"No changes to deploy. Stack {stack_name} is up to date")

    click.echo("")
    print_info("Stack outputs:")
    print_outputs(result.outputs)

    click.echo("")
    print_info(RULE)
    print_info("Next Steps:")
    print_info(RULE)
    for step in NEXT_STEPS:
        print_info(step)
    print_info(RULE)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option('-r', '--region', default=None, help='AWS Region - default: us-east-1')
@click.option('-s', '--stack-name', default=None,
              help='CloudFormation stack name - default: ws-api-infrastructure')
@click.option('-f', '--force', is_flag=True, help='Skip confirmation prompt')
@click.option('-v', '--verbose', is_flag=True, help='Verbose logging')
def delete(region, stack_name, force, verbose):
    """Delete WebSocket API infrastructure CloudFormation stack"""
    settings = get_settings()
    configure_logging(verbose)

    region = region or settings.aws_region
    stack_name = stack_name or settings.stack_name

    print_banner("CloudFormation Stack Deletion", [
        ("Stack Name", stack_name),
        ("Region", region),
    ], warning=True)

    try:
        manager = StackManager(stack_name, region=region, settings=settings)

        print_info("Checking if stack exists...")
        if not manager.stack_exists():
            print_error(f"Stack not found: {stack_name}")
            sys.exit(1)

        print_info("Current stack resources:")
        print_table(
            ["ResourceType", "LogicalResourceId"],
            [[r.get('ResourceType', ''), r.get('LogicalResourceId', '')] for r in manager.list_resources()],
        )
    except AWS_ERRORS + (StackNotFoundError,) as e:
        print_error(f"Stack not found: {stack_name} ({e})")
        sys.exit(1)

    click.echo("")

    if not force:
        print_warning("WARNING: This will delete all resources in the stack!")
        if not delete_confirmed(ask(DELETE_PROMPT)):
            print_info("Deletion cancelled")
            sys.exit(0)

    print_info(f"Deleting CloudFormation stack: {stack_name}")
    try:
        manager.start_delete()
    except AWS_ERRORS as e:
        print_error("Failed to initiate stack deletion")
        print_error(str(e))
        sys.exit(1)

    print_info("Stack deletion initiated")
    print_info("Waiting for stack deletion to complete...")
    try:
        manager.wait_for_delete()
    except StackOperationError as e:
        print_error("Stack deletion failed or timed out")
        print_failure_events(e.events)
        sys.exit(1)
    except AWS_ERRORS as e:
        print_error("Stack deletion failed or timed out")
        print_error(str(e))
        sys.exit(1)

    print_info("Stack deleted successfully!")


@cli.command()
@click.option('-r', '--region', default=None, help='AWS Region - default: us-east-1')
@click.option('-s', '--stack-name', default=None,
              help='CloudFormation stack name - default: ws-api-infrastructure')
@click.option('-v', '--verbose', is_flag=True, help='Verbose logging')
def status(region, stack_name, verbose):
    """Show stack status, outputs and recent failures"""
    settings = get_settings()
    configure_logging(verbose)

    region = region or settings.aws_region
    stack_name = stack_name or settings.stack_name

    try:
        summary = StackManager(stack_name, region=region, settings=settings).get_status()
    except StackNotFoundError as e:
        print_error(str(e))
        sys.exit(1)
    except AWS_ERRORS as e:
        print_error(f"Could not describe stack {stack_name}: {e}")
        sys.exit(1)

    print_banner("CloudFormation Stack Status", [
        ("Stack Name", summary['stack_name']),
        ("Region", region),
        ("Status", summary['status']),
        ("Last Updated", summary['last_updated'] or ''),
    ])
    if summary['reason']:
        print_info(f"Reason: {summary['reason']}")

    print_info("Stack outputs:")
    print_outputs(summary['outputs'])

    if summary['failures']:
        print_warning("Stack has failed resources")
        print_failure_events(summary['failures'])


@cli.command()
@click.option('-r', '--region', default=None, help='AWS Region - default: us-east-1')
@click.option('--template-file', default=None, help='Template file path')
@click.option('-v', '--verbose', is_flag=True, help='Verbose logging')
def validate(region, template_file, verbose):
    """Validate the CloudFormation template"""
    settings = get_settings()
    configure_logging(verbose)

    region = region or settings.aws_region
    template_file = template_file or settings.template_file

    try:
        template_body = load_template(template_file)
        print_info("Validating CloudFormation template...")
        validation = StackManager(settings.stack_name, region=region, settings=settings).validate(template_body)
    except InfraError as e:
        print_error(str(e))
        sys.exit(1)
    except AWS_ERRORS as e:
        print_error(f"Template validation failed: {e}")
        sys.exit(1)

    print_info("Template validation successful")
    if validation['description']:
        print_info(f"Description: {validation['description']}")
    print_info(f"Parameters: {', '.join(validation['parameters']) or '(none)'}")
    if validation['capabilities']:
        print_info(f"Required capabilities: {', '.join(validation['capabilities'])}")


cli.add_command(deploy)
cli.add_command(delete)


if __name__ == "__main__":
    cli()
