"""CloudFormation template loading and validation."""
import logging
from pathlib import Path
from typing import Any, Dict, Union

from botocore.exceptions import ClientError

from ws_infra.errors import TemplateError

logger = logging.getLogger(__name__)

# Largest TemplateBody CloudFormation accepts inline; bigger templates must be
# uploaded to S3 first.
MAX_TEMPLATE_BODY_BYTES = 51200


def load_template(path: Union[str, Path]) -> str:
    """Read a template file, enforcing the inline size limit."""
    template_path = Path(path)
    if not template_path.is_file():
        raise TemplateError(f"Template file not found: {template_path}")

    try:
        body = template_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Could not read template {template_path}: {e}") from e

    size = len(body.encode('utf-8'))
    if size > MAX_TEMPLATE_BODY_BYTES:
        raise TemplateError(
            f"Template {template_path} is {size} bytes; templates over "
            f"{MAX_TEMPLATE_BODY_BYTES} bytes must be uploaded to S3"
        )

    logger.debug(f"Loaded template {template_path} ({size} bytes)")
    return body


def validate_template(client, template_body: str) -> Dict[str, Any]:
    """
    Validate a template body with CloudFormation.

    Args:
        client: CloudFormation client
        template_body: Template text

    Returns:
        Dict with the template's parameter keys, required capabilities and description

    Raises:
        TemplateError: if CloudFormation rejects the template
    """
    try:
        response = client.validate_template(TemplateBody=template_body)
    except ClientError as e:
        message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(f"Template validation failed: {message}")
        raise TemplateError(f"Template validation failed: {message}") from e

    return {
        'parameters': [p['ParameterKey'] for p in response.get('Parameters', [])],
        'capabilities': response.get('Capabilities', []),
        'description': response.get('Description', ''),
    }
