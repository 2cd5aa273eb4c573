"""
CloudFormation stack lifecycle operations.

Deploys follow the change-set flow used by ``aws cloudformation deploy``:
create a change set, wait for it, execute it, then wait on the stack.
Deletes issue DeleteStack and poll until the stack is gone. Every call is
synchronous; rollback of a failed create or update is left to CloudFormation.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError, WaiterError

from ws_infra.aws.clients import get_cloudformation_client
from ws_infra.aws.parameters import build_parameters
from ws_infra.aws.template import validate_template
from ws_infra.errors import StackNotFoundError, StackOperationError
from ws_infra.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# StatusReason fragments CloudFormation uses for a change set with nothing in it
EMPTY_CHANGESET_REASONS = (
    "The submitted information didn't contain changes",
    "No updates are to be performed",
)

# Stacks in these states can only be deleted. CREATE_FAILED is left out: a
# create with rollback disabled can still be updated.
UNRECOVERABLE_STATUSES = ("ROLLBACK_COMPLETE", "ROLLBACK_FAILED")


@dataclass
class DeployResult:
    """Outcome of a deploy."""
    stack_name: str
    change_set_type: str
    changed: bool
    status: Optional[str] = None
    outputs: List[Dict[str, str]] = field(default_factory=list)


def is_missing_stack_error(error: ClientError) -> bool:
    """True when a ClientError means the stack does not exist."""
    err = error.response.get('Error', {})
    return err.get('Code') == 'ValidationError' and 'does not exist' in err.get('Message', '')


class StackManager:
    """Create, update, inspect and delete a single named stack."""

    def __init__(self, stack_name: str, region: Optional[str] = None,
                 client=None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.stack_name = stack_name
        self.region = region or self.settings.aws_region
        self.client = client or get_cloudformation_client(self.region)
        self.stack_id = None

    def describe_stack(self) -> Optional[Dict[str, Any]]:
        """Return the stack description, or None if the stack does not exist."""
        try:
            response = self.client.describe_stacks(StackName=self.stack_name)
        except ClientError as e:
            if is_missing_stack_error(e):
                logger.debug(f"Stack {self.stack_name} does not exist in {self.region}")
                return None
            raise

        stacks = response.get('Stacks', [])
        if not stacks or stacks[0].get('StackStatus') == 'DELETE_COMPLETE':
            return None

        stack = stacks[0]
        self.stack_id = stack.get('StackId')
        return stack

    def stack_exists(self) -> bool:
        return self.describe_stack() is not None

    def get_outputs(self, stack: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
        """Stack outputs as OutputKey/OutputValue/Description dicts."""
        if stack is None:
            stack = self.describe_stack()
            if stack is None:
                raise StackNotFoundError(self.stack_name)

        return [
            {
                'OutputKey': output.get('OutputKey', ''),
                'OutputValue': output.get('OutputValue', ''),
                'Description': output.get('Description', ''),
            }
            for output in stack.get('Outputs', [])
        ]

    def list_resources(self) -> List[Dict[str, Any]]:
        """All resource summaries in the stack."""
        resources = []
        paginator = self.client.get_paginator('list_stack_resources')
        try:
            for page in paginator.paginate(StackName=self.stack_name):
                resources.extend(page.get('StackResourceSummaries', []))
        except ClientError as e:
            if is_missing_stack_error(e):
                raise StackNotFoundError(self.stack_name) from e
            raise
        return resources

    def get_failure_events(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Most recent failed resource events, newest first.

        Only used to explain a failure, so lookup problems are logged rather
        than raised.
        """
        try:
            response = self.client.describe_stack_events(StackName=self.stack_id or self.stack_name)
        except ClientError as e:
            logger.warning(f"Could not read events for stack {self.stack_name}: {e}")
            return []

        failures = [
            event for event in response.get('StackEvents', [])
            if event.get('ResourceStatus', '').endswith('_FAILED')
        ]
        return failures[:limit]

    def validate(self, template_body: str) -> Dict[str, Any]:
        return validate_template(self.client, template_body)

    def deploy(self, template_body: str, overrides: Dict[str, str],
               capabilities: Optional[List[str]] = None,
               template_keys: Optional[List[str]] = None) -> DeployResult:
        """
        Create or update the stack from a template.

        Args:
            template_body: Template text
            overrides: Parameter values keyed by parameter name
            capabilities: Capabilities to acknowledge (defaults to settings)
            template_keys: Parameter keys declared by the template; looked up
                with ValidateTemplate when not given

        Returns:
            DeployResult describing what happened

        Raises:
            StackOperationError: if the change set or stack operation fails
        """
        stack = self.describe_stack()
        status = stack.get('StackStatus') if stack else None

        if stack is None or status == 'REVIEW_IN_PROGRESS':
            change_set_type = 'CREATE'
        elif status in UNRECOVERABLE_STATUSES:
            raise StackOperationError(
                f"Stack {self.stack_name} is in {status} state and cannot be updated. "
                f"Delete the stack and deploy again."
            )
        else:
            change_set_type = 'UPDATE'

        if template_keys is None:
            template_keys = self.validate(template_body)['parameters']

        previous_keys = []
        if change_set_type == 'UPDATE':
            previous_keys = [p['ParameterKey'] for p in stack.get('Parameters', [])]

        parameters = build_parameters(template_keys, overrides, previous_keys)
        change_set_name = f"{self.settings.change_set_prefix}{int(time.time())}"

        logger.info(f"Creating {change_set_type} change set {change_set_name} for {self.stack_name}")
        response = self.client.create_change_set(
            StackName=self.stack_name,
            ChangeSetName=change_set_name,
            ChangeSetType=change_set_type,
            TemplateBody=template_body,
            Parameters=parameters,
            Capabilities=capabilities if capabilities is not None else self.settings.capabilities,
            Description=f"Created by ws-infra at {time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())}",
        )
        change_set_id = response['Id']
        self.stack_id = response.get('StackId', self.stack_id)

        if not self._wait_for_change_set(change_set_id):
            if self.settings.fail_on_empty_changeset:
                raise StackOperationError(f"No changes to deploy for stack {self.stack_name}")
            logger.info(f"No changes to deploy for stack {self.stack_name}")
            return DeployResult(
                stack_name=self.stack_name,
                change_set_type=change_set_type,
                changed=False,
                status=status,
                outputs=self.get_outputs(stack) if stack else [],
            )

        logger.info(f"Executing change set {change_set_name}")
        self.client.execute_change_set(ChangeSetName=change_set_id, StackName=self.stack_name)

        waiter_name = 'stack_create_complete' if change_set_type == 'CREATE' else 'stack_update_complete'
        self._wait_for_stack(waiter_name, f"Stack {change_set_type.lower()} failed")

        final = self.describe_stack()
        return DeployResult(
            stack_name=self.stack_name,
            change_set_type=change_set_type,
            changed=True,
            status=final.get('StackStatus') if final else None,
            outputs=self.get_outputs(final) if final else [],
        )

    def _wait_for_change_set(self, change_set_id: str) -> bool:
        """Wait for a change set; False when it failed only for having no changes."""
        waiter = self.client.get_waiter('change_set_create_complete')
        try:
            waiter.wait(
                ChangeSetName=change_set_id,
                StackName=self.stack_name,
                WaiterConfig=self.settings.change_set_waiter_config(),
            )
            return True
        except WaiterError as e:
            response = self.client.describe_change_set(
                ChangeSetName=change_set_id,
                StackName=self.stack_name,
            )
            status = response.get('Status')
            reason = response.get('StatusReason', '')
            if status == 'FAILED' and any(marker in reason for marker in EMPTY_CHANGESET_REASONS):
                return False
            logger.error(f"Change set {change_set_id} did not complete: {status} {reason}")
            raise StackOperationError(f"Failed to create change set: {status}: {reason}") from e

    def _wait_for_stack(self, waiter_name: str, failure_message: str) -> None:
        waiter = self.client.get_waiter(waiter_name)
        logger.debug(f"Waiting on {waiter_name} for {self.stack_id or self.stack_name}")
        try:
            waiter.wait(
                StackName=self.stack_id or self.stack_name,
                WaiterConfig=self.settings.stack_waiter_config(),
            )
        except WaiterError as e:
            logger.error(f"{failure_message}: {e}")
            raise StackOperationError(
                f"{failure_message}: {e}",
                events=self.get_failure_events(),
            ) from e

    def delete(self) -> None:
        """
        Delete the stack and block until CloudFormation reports completion.

        Raises:
            StackNotFoundError: if the stack does not exist
            StackOperationError: if deletion fails or the waiter gives up
        """
        if self.describe_stack() is None:
            raise StackNotFoundError(self.stack_name)

        self.start_delete()
        self.wait_for_delete()

    def start_delete(self) -> None:
        logger.info(f"Deleting stack {self.stack_name} ({self.stack_id})")
        self.client.delete_stack(StackName=self.stack_name)

    def wait_for_delete(self) -> None:
        self._wait_for_stack('stack_delete_complete', "Stack deletion failed or timed out")
        logger.info(f"Stack {self.stack_name} deleted")

    def get_status(self) -> Dict[str, Any]:
        """Summary of the stack for status reporting."""
        stack = self.describe_stack()
        if stack is None:
            raise StackNotFoundError(self.stack_name)

        status = stack.get('StackStatus', '')
        updated = stack.get('LastUpdatedTime') or stack.get('CreationTime')
        summary = {
            'stack_name': stack.get('StackName', self.stack_name),
            'stack_id': stack.get('StackId'),
            'status': status,
            'reason': stack.get('StackStatusReason', ''),
            'last_updated': updated.isoformat() if hasattr(updated, 'isoformat') else updated,
            'outputs': self.get_outputs(stack),
            'failures': [],
        }
        if status.endswith('_FAILED') or 'ROLLBACK' in status:
            summary['failures'] = self.get_failure_events()
        return summary
