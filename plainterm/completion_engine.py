# plainterm/completion_engine.py
#
# Shell-style path completion for the input line. Everything here is a pure
# function of (input line, working directory, filesystem at call time): no
# state is kept between calls and nothing is displayed. Rendering an
# ambiguous result is the caller's business.

import os
import re
import logging
from dataclasses import dataclass
from typing import Tuple, Union

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"

# The segment being completed is the trailing run of non-whitespace.
_SEGMENT_PATTERN = re.compile(r'\S*\Z')


@dataclass(frozen=True)
class PathContext:
    """Where to look and what to match, derived from the segment being completed."""
    is_absolute: bool
    directory: str          # resolved directory to list
    prefix: str             # name prefix to match inside `directory`
    typed_directory: str = ""  # directory part exactly as typed, reused when rebuilding


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Unique:
    text: str


@dataclass(frozen=True)
class CommonPrefix:
    text: str


@dataclass(frozen=True)
class Ambiguous:
    candidates: Tuple[str, ...]


CompletionResult = Union[NoMatch, Unique, CommonPrefix, Ambiguous]


def split_input(input_line: str) -> Tuple[str, str]:
    """Splits the line into (command prefix, segment to complete).

    The command prefix is everything up to and including the last whitespace
    run and is handed back untouched. When the line ends in whitespace the
    segment is empty.
    """
    match = _SEGMENT_PATTERN.search(input_line)
    start = match.start() if match else len(input_line)
    return input_line[:start], input_line[start:]


def build_path_context(segment: str, cwd: str) -> PathContext:
    """Resolves the directory to list and the prefix to match for `segment`."""
    is_absolute = segment.startswith(PATH_SEPARATOR)
    sep_index = segment.rfind(PATH_SEPARATOR)
    if sep_index == -1:
        typed_directory, prefix = "", segment
    else:
        typed_directory, prefix = segment[:sep_index + 1], segment[sep_index + 1:]

    if is_absolute:
        directory = typed_directory
    elif typed_directory:
        directory = os.path.join(cwd, typed_directory)
    else:
        directory = cwd

    return PathContext(is_absolute=is_absolute, directory=directory,
                       prefix=prefix, typed_directory=typed_directory)


def _list_directory(directory: str) -> dict:
    """Returns {name: is_dir} for every entry, or raises OSError."""
    entries = {}
    with os.scandir(directory) as it:
        for entry in it:
            try:
                entries[entry.name] = entry.is_dir()
            except OSError:
                # Broken symlink or a permission problem on the entry itself.
                entries[entry.name] = False
    return entries


def complete(input_line: str, cwd: str) -> CompletionResult:
    """Completes the last path segment of `input_line`.

    Args:
        input_line: The current contents of the edit buffer.
        cwd: Directory that relative segments are resolved against.

    Returns:
        NoMatch when nothing matches or the directory cannot be read,
        Unique with the rebuilt line when exactly one entry matches (ending in
        "/" for a directory, " " otherwise), CommonPrefix when several entries
        share a prefix longer than the typed one, and Ambiguous with the sorted
        candidate names when they do not.
    """
    command_prefix, segment = split_input(input_line)
    context = build_path_context(segment, cwd)

    try:
        entries = _list_directory(context.directory)
    except OSError as e:
        logger.debug(f"complete: cannot list '{context.directory}': {e}")
        return NoMatch()

    matches = sorted(name for name in entries if name.startswith(context.prefix))
    logger.debug(f"complete: prefix '{context.prefix}' in '{context.directory}' -> {len(matches)} match(es)")

    if not matches:
        return NoMatch()

    base = command_prefix + context.typed_directory

    if len(matches) == 1:
        name = matches[0]
        suffix = PATH_SEPARATOR if entries[name] else " "
        return Unique(base + name + suffix)

    common = os.path.commonprefix(matches)
    if len(common) > len(context.prefix):
        return CommonPrefix(base + common)
    return Ambiguous(tuple(matches))
