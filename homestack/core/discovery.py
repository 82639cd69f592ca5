"""Stack discovery: finds compose-managed directories below the stacks root."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from ..constants import COMPOSE_FILE_NAMES, MAX_STACK_DEPTH
from ..models.stack import Stack
from .exceptions import ComposeFileError, StackNotFoundError

logger = structlog.get_logger()


def find_compose_file(directory: Path) -> Path | None:
    """Return the compose file of a directory, or None if it has none."""
    for name in COMPOSE_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def discover_stacks(root: Path | str) -> list[Stack]:
    """Find every directory at depth 1 or 2 under root that holds a compose file.

    Hidden directories are skipped. An empty list is a valid result.
    """
    root = Path(root)
    stacks: list[Stack] = []

    def walk(directory: Path, depth: int) -> None:
        try:
            children = sorted(p for p in directory.iterdir() if p.is_dir())
        except OSError as e:
            logger.warning("Cannot scan directory", directory=str(directory), error=str(e))
            return

        for child in children:
            if child.name.startswith("."):
                continue
            compose_file = find_compose_file(child)
            if compose_file is not None:
                stacks.append(_build_stack(root, child, compose_file))
            if depth < MAX_STACK_DEPTH:
                walk(child, depth + 1)

    walk(root, 1)
    logger.debug("Discovered stacks", root=str(root), stacks=[s.name for s in stacks])
    return stacks


def _build_stack(root: Path, directory: Path, compose_file: Path) -> Stack:
    return Stack(
        name=directory.relative_to(root).as_posix(),
        path=directory.resolve(),
        compose_file=compose_file.resolve(),
        project=_read_project_name(compose_file),
    )


def _read_project_name(compose_file: Path) -> str | None:
    try:
        data = _parse_compose(compose_file)
    except ComposeFileError as e:
        logger.warning("Ignoring unreadable compose file", compose_file=str(compose_file), error=str(e))
        return None
    name = data.get("name")
    return str(name) if name else None


def _parse_compose(compose_file: Path) -> dict[str, Any]:
    try:
        loaded = yaml.safe_load(compose_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ComposeFileError(f"Failed to load compose file {compose_file}: {e}") from e
    # yaml.safe_load can return None, str, list for degenerate files
    if not isinstance(loaded, dict):
        return {}
    return loaded


def load_compose(stack: Stack) -> dict[str, Any]:
    """Parse a stack's compose file.

    Raises:
        ComposeFileError: If the file cannot be read or is not valid YAML
    """
    return _parse_compose(stack.compose_file)


def resolve_stack(root: Path | str, name: str) -> Stack:
    """Look a stack up by relative path, then by compose project name.

    Raises:
        StackNotFoundError: If no discovered stack matches
    """
    stacks = discover_stacks(root)
    wanted = name.strip("/")
    for stack in stacks:
        if stack.name == wanted:
            return stack
    for stack in stacks:
        if stack.project == wanted:
            return stack
    raise StackNotFoundError(name, [stack.name for stack in stacks])
