"""Command line validation of workflow documents.

Usage:
    orcaloop-validate [--strict] <workflow.yaml> [workflow2.yaml ...]

Each document is parsed, converted to a step tree and checked by
``WorkflowValidator``. The exit status is 0 only when every document is valid.
"""

import logging
import sys
from pathlib import Path

import yaml

from .config import get_config
from .workflow.models import WorkflowValidationError, workflow_from_dict
from .workflow.validator import WorkflowValidator
from .yaml_loader import get_yaml_loader

logger = logging.getLogger(__name__)

USAGE = "Usage: orcaloop-validate [--strict] <workflow.yaml> [workflow2.yaml ...]"


def _report(path: Path, status: str, lines: list[str] | None = None):
    print(f"{path}: {status}")
    for line in lines or []:
        print(f"    {line}")


def validate_file(file_path: Path, strict: bool | None = None) -> bool:
    """Validate one workflow document and print its report.

    Args:
        file_path: Path to the workflow document
        strict: Treat warnings as errors (defaults to configuration)

    Returns:
        True if the document is a valid workflow
    """
    try:
        data = get_yaml_loader().load_yaml(file_path)
    except yaml.YAMLError as e:
        _report(file_path, "INVALID", [f"Invalid YAML syntax: {e}"])
        return False
    except (OSError, ValueError) as e:
        _report(file_path, "INVALID", [f"Cannot read document: {e}"])
        return False

    try:
        workflow = workflow_from_dict(data)
    except WorkflowValidationError as e:
        _report(file_path, "INVALID", [f"Malformed workflow document: {e}"])
        return False

    validator = WorkflowValidator(strict=strict)
    is_valid = validator.validate(workflow)

    lines = [f"error: {issue}" for issue in validator.errors]
    lines.extend(f"warning: {issue}" for issue in validator.warnings)
    _report(file_path, "OK" if is_valid else "INVALID", lines)

    return is_valid


def run(paths: list[str], strict: bool | None = None) -> bool:
    """Validate every path. Returns True when all of them are valid."""
    results = []
    for file_path in paths:
        path = Path(file_path)
        if not path.is_file():
            _report(path, "INVALID", ["File not found"])
            results.append(False)
        else:
            results.append(validate_file(path, strict=strict))

    logger.info(f"{results.count(True)} of {len(results)} workflow document(s) valid")
    return all(results)


def main(argv: list[str] | None = None):
    """Entry point for ``orcaloop-validate``."""
    args = sys.argv[1:] if argv is None else list(argv)

    config = get_config()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger().setLevel(logging.DEBUG if config.debug_mode else getattr(logging, config.log_level))

    strict = True if "--strict" in args else None
    paths = [arg for arg in args if arg != "--strict"]

    if not paths:
        print(USAGE)
        sys.exit(1)

    sys.exit(0 if run(paths, strict=strict) else 1)


if __name__ == "__main__":
    main()
