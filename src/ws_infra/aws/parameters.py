"""
Parameters file handling.

The parameters file supplies overrides for template parameters at deploy
time. The layouts accepted are the ones ``aws cloudformation deploy
--parameter-overrides file://...`` accepts:

    [{"ParameterKey": "KeyPairName", "ParameterValue": "my-key"}]
    ["KeyPairName=my-key", "InstanceType=t3.small"]
    {"Parameters": {"KeyPairName": "my-key"}}
    {"KeyPairName": "my-key"}
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from ws_infra.errors import ParametersError

logger = logging.getLogger(__name__)


def check_placeholder(path: Union[str, Path], placeholder: str) -> None:
    """Fail if the parameters file still contains the placeholder token."""
    parameters_path = Path(path)
    if not parameters_path.is_file():
        raise ParametersError(f"Parameters file not found: {parameters_path}")

    try:
        text = parameters_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ParametersError(f"Could not read parameters file {parameters_path}: {e}") from e

    if placeholder in text:
        raise ParametersError(f"Please update {parameters_path} with your EC2 key pair name")


def load_parameters(path: Union[str, Path]) -> Dict[str, str]:
    """Read a parameters file into a key/value mapping."""
    parameters_path = Path(path)
    if not parameters_path.is_file():
        raise ParametersError(f"Parameters file not found: {parameters_path}")

    try:
        with open(parameters_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ParametersError(f"Parameters file {parameters_path} is not valid JSON: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParametersError(f"Could not read parameters file {parameters_path}: {e}") from e

    return parse_parameters(data)


def parse_parameters(data: Any) -> Dict[str, str]:
    """Normalise any accepted parameters layout to a key/value mapping."""
    if isinstance(data, dict):
        if set(data.keys()) == {'Parameters'} and isinstance(data['Parameters'], dict):
            data = data['Parameters']
        return {str(key): _stringify(value) for key, value in data.items()}

    if not isinstance(data, list):
        raise ParametersError("Parameters must be a JSON list or object")

    overrides = {}
    for entry in data:
        if isinstance(entry, dict):
            if 'ParameterKey' not in entry or 'ParameterValue' not in entry:
                raise ParametersError(
                    f"Parameter entry needs ParameterKey and ParameterValue: {entry}"
                )
            overrides[entry['ParameterKey']] = _stringify(entry['ParameterValue'])
        elif isinstance(entry, str):
            key, sep, value = entry.partition('=')
            if not sep or not key:
                raise ParametersError(f"Invalid parameter format (expected Key=Value): {entry}")
            overrides[key] = value
        else:
            raise ParametersError(f"Unsupported parameter entry: {entry!r}")
    return overrides


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, list):
        return ','.join(str(v) for v in value)
    return str(value)


def build_parameters(template_keys: Iterable[str], overrides: Dict[str, str],
                     previous_keys: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """
    Build the Parameters list for a change set.

    Overridden keys carry their value. Keys that are not overridden but exist
    on the current stack keep their previous value. Everything else falls
    back to the template default.
    """
    template_keys = list(template_keys)
    previous = set(previous_keys)

    unknown = sorted(set(overrides) - set(template_keys))
    if unknown:
        logger.warning(f"Ignoring parameters not declared by the template: {', '.join(unknown)}")

    parameters = []
    for key in template_keys:
        if key in overrides:
            parameters.append({'ParameterKey': key, 'ParameterValue': overrides[key]})
        elif key in previous:
            parameters.append({'ParameterKey': key, 'UsePreviousValue': True})
    return parameters
