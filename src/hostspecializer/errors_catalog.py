"""Actionable error catalog for HostSpecializer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_in_placeholder_mode": {
        "what": "Assign called while host is not in placeholder mode.",
        "next": "Only a placeholder instance can be specialized; restart the instance to reuse it.",
    },
    "assignment_conflict": {
        "what": "Instance is already assigned to site {site_name}.",
        "next": "Send the original assignment again or target another placeholder.",
    },
    "unrecognized_package_format": {
        "what": "Unrecognized package format: {path}",
        "next": "Publish the package as `.zip` or as a squashfs image (`.squashfs`, `.sfs`, `.sqsh`, `.img`, `.fs`).",
    },
    "command_not_found": {
        "what": "Required command not found: {command}.",
        "next": "Install it on the host image and try again.",
    },
    "command_timeout": {
        "what": "Command timed out after {timeout}s: {command}",
        "next": "Check the package size and the mount tooling, or raise `command_timeout`.",
    },
    "config_not_found": {
        "what": "Config file not found: {path}",
        "next": "Check the path or drop `--config` to use the defaults.",
    },
    "context_not_found": {
        "what": "Assignment context file not found: {path}",
        "next": "Provide a JSON or YAML file describing the assignment.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
