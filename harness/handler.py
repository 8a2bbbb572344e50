"""
Lambda entry point for the load-test harness.

The event is the load-test script itself. A script may name a YAML file
under the ``">>"`` key; that file is merged underneath the script before
the task runs. Failures are reported as the Lambda result string, with the
traceback in the function's logs.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol, Union

import yaml

from .config import config as default_config
from .errors import MergeFileError
from .metrics import get_metrics_emitter
from .modes import get_mode_for_display, validate_script_mode
from .tracing import traced

logger = logging.getLogger(__name__)

MERGE_FILE_FIELD = ">>"


class Task(Protocol):
    def execute_task(self, script: dict[str, Any], settings: Any) -> Any: ...


class PlatformSettings(Protocol):
    def get_settings(self, script: dict[str, Any]) -> Any: ...


def configure_logging(debug: Optional[bool] = None) -> None:
    """Send logs to stdout for CloudWatch."""
    if debug is None:
        debug = default_config.debug
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def _task_root() -> Path:
    return Path(os.getenv("LAMBDA_TASK_ROOT") or os.getcwd()).resolve()


def get_merge_file_path(merge_file_input: Any, base_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve a merge file reference, refusing anything outside the task root.

    Raises:
        MergeFileError: If the reference is not a string or escapes ``base_dir``
    """
    if not merge_file_input or not isinstance(merge_file_input, str):
        raise MergeFileError(f"'{type(merge_file_input).__name__}' is not a valid path.")
    root = Path(base_dir).resolve() if base_dir is not None else _task_root()
    absolute_path = (root / merge_file_input).resolve()
    if not absolute_path.is_relative_to(root):
        raise MergeFileError(f"Merge file {absolute_path} is not a local file path.")
    return absolute_path


def read_merge_file(merge_file_input: Any, base_dir: Optional[Union[str, Path]] = None) -> dict[str, Any]:
    """Load a merge file as YAML."""
    try:
        path = get_merge_file_path(merge_file_input, base_dir)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to read merge file %s", merge_file_input, exc_info=True)
        raise MergeFileError(f"Failed to read merge file {merge_file_input}: {e}") from e
    except MergeFileError:
        logger.error("Failed to read merge file %s", merge_file_input, exc_info=True)
        raise
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MergeFileError(f"Merge file {merge_file_input} must contain a mapping")
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto ``base``; nested mappings merge, other values replace."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_if(
    script: dict[str, Any],
    read_merge: Callable[[Any], dict[str, Any]] = read_merge_file,
) -> dict[str, Any]:
    """Merge the script over its ``">>"`` file, if it names one."""
    if MERGE_FILE_FIELD not in script:
        return script
    input_data = read_merge(script[MERGE_FILE_FIELD])
    own = {key: value for key, value in script.items() if key != MERGE_FILE_FIELD}
    return deep_merge(input_data, own)


def create_handler(
    task: Task,
    platform_settings: PlatformSettings,
    read_merge: Callable[[Any], dict[str, Any]] = read_merge_file,
) -> Callable[[dict[str, Any], Any], Any]:
    """
    Build the Lambda handler around a task and its platform settings.

    Args:
        task: Runs a merged script
        platform_settings: Derives run settings from the script
        read_merge: Loader for ``">>"`` merge files

    Returns:
        Handler function ``(event, context) -> result``
    """
    configure_logging()

    @traced("lambda.handler")
    def handler(event: dict[str, Any], context: Any) -> Any:
        debug = default_config.debug
        metrics = get_metrics_emitter()

        try:
            script = event
            script["_funcAws"] = {
                "functionName": getattr(context, "function_name", None),
            }
            validate_script_mode(script)
            settings = platform_settings.get_settings(script)
        except Exception as e:
            logger.exception("Error validating event")
            metrics.record_error(type(e).__name__, str(e), operation="validate")
            if debug:
                logger.debug("LambdaResult %s", json.dumps(str(e)))
            return f"Error validating event: {e}"

        try:
            logger.info("Running %s script", get_mode_for_display(script))
            merged = merge_if(script, read_merge)
            result = task.execute_task(merged, settings)
        except Exception as e:
            logger.exception("Error executing task")
            metrics.record_error(type(e).__name__, str(e), operation="execute")
            if debug:
                logger.debug("LambdaResult %s", json.dumps(str(e)))
            return f"Error executing task: {e}"

        if debug:
            logger.debug("LambdaResult %s", json.dumps(result, default=str))
        return result

    return handler
