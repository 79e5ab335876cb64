# tests/test_completion_engine.py
import os

import pytest

from plainterm.completion_engine import (
    Ambiguous, CommonPrefix, NoMatch, PathContext, Unique,
    build_path_context, complete, split_input,
)


# --- split_input ---
split_test_cases = [
    ("mai", ("", "mai")),
    ("cat mai", ("cat ", "mai")),
    ("cat   src/ma", ("cat   ", "src/ma")),
    ("ls ", ("ls ", "")),
    ("", ("", "")),
    ("git add  ", ("git add  ", "")),
]


@pytest.mark.parametrize("input_line, expected", split_test_cases)
def test_split_input(input_line, expected):
    assert split_input(input_line) == expected


# --- build_path_context ---
def test_relative_segment_resolves_against_cwd():
    context = build_path_context("ma", "/work")
    assert context == PathContext(is_absolute=False, directory="/work", prefix="ma", typed_directory="")


def test_relative_segment_with_directory_part():
    context = build_path_context("src/ut", "/work")
    assert context.directory == os.path.join("/work", "src/")
    assert context.prefix == "ut"
    assert context.typed_directory == "src/"
    assert not context.is_absolute


def test_absolute_segment_splits_at_last_separator():
    context = build_path_context("/usr/lo", "/work")
    assert context.is_absolute
    assert context.directory == "/usr/"
    assert context.prefix == "lo"


def test_root_segment():
    context = build_path_context("/", "/work")
    assert context.directory == "/"
    assert context.prefix == ""


# --- complete ---
def test_common_prefix_longer_than_typed(completion_dir):
    assert complete("mai", str(completion_dir)) == CommonPrefix("main.")


def test_ambiguous_when_common_prefix_equals_typed(completion_dir):
    assert complete("main.", str(completion_dir)) == Ambiguous(("main.go", "main.py"))


def test_unique_file_gets_trailing_space(completion_dir):
    assert complete("main.g", str(completion_dir)) == Unique("main.go ")


def test_unique_directory_gets_trailing_separator(completion_dir):
    assert complete("sr", str(completion_dir)) == Unique("src/")


def test_no_match(completion_dir):
    assert complete("zzz", str(completion_dir)) == NoMatch()


def test_ambiguous_candidates_are_sorted(completion_dir):
    result = complete("m", str(completion_dir))
    assert result == Ambiguous(("main.go", "main.py", "module.go"))


def test_command_prefix_is_kept_verbatim(completion_dir):
    assert complete("cat  main.g", str(completion_dir)) == Unique("cat  main.go ")
    assert complete("vim mai", str(completion_dir)) == CommonPrefix("vim main.")


def test_empty_segment_after_command_lists_everything(completion_dir):
    result = complete("ls ", str(completion_dir))
    assert result == Ambiguous(("main.go", "main.py", "module.go", "src"))


def test_nested_relative_path(completion_dir):
    assert complete("less src/u", str(completion_dir)) == Unique("less src/util.py ")


def test_absolute_path(completion_dir):
    typed = f"cat {completion_dir}/main.p"
    assert complete(typed, "/") == Unique(f"cat {completion_dir}/main.py ")


def test_missing_directory_is_no_match(completion_dir):
    assert complete("nope/ma", str(completion_dir)) == NoMatch()
    assert complete("x", str(completion_dir / "does-not-exist")) == NoMatch()


def test_unreadable_directory_is_no_match(completion_dir, mocker):
    mocker.patch("plainterm.completion_engine.os.scandir", side_effect=PermissionError("denied"))
    assert complete("mai", str(completion_dir)) == NoMatch()


def test_file_used_as_directory_is_no_match(completion_dir):
    assert complete("main.go/x", str(completion_dir)) == NoMatch()


@pytest.mark.parametrize("name, is_dir", [
    ("alpha", True), ("beta.txt", False), ("gamma.d", True), ("delta", False),
])
def test_unique_ends_in_separator_iff_directory(tmp_path, name, is_dir):
    target = tmp_path / name
    if is_dir:
        target.mkdir()
    else:
        target.write_text("")
    result = complete(name[:2], str(tmp_path))
    assert isinstance(result, Unique)
    assert result.text.endswith("/") == is_dir
    assert result.text.endswith(" ") == (not is_dir)


def test_symlink_to_directory_completes_as_directory(tmp_path):
    (tmp_path / "real").mkdir()
    os.symlink(tmp_path / "real", tmp_path / "link")
    assert complete("li", str(tmp_path)) == Unique("link/")


def test_results_do_not_depend_on_previous_calls(completion_dir):
    first = complete("main.", str(completion_dir))
    second = complete("main.", str(completion_dir))
    assert first == second == Ambiguous(("main.go", "main.py"))


def test_filesystem_changes_are_seen_on_next_call(completion_dir):
    assert complete("main.", str(completion_dir)) == Ambiguous(("main.go", "main.py"))
    os.remove(completion_dir / "main.py")
    assert complete("main.", str(completion_dir)) == Unique("main.go ")
