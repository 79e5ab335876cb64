# tests/test_file_tree.py
import gc
import os

import pytest

from plainterm.file_tree import FileNode, load_tree, render_tree


@pytest.fixture
def project_dir(tmp_path):
    (tmp_path / "b.txt").write_text("")
    (tmp_path / "a.txt").write_text("")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("")
    (tmp_path / "src" / "pkg").mkdir()
    (tmp_path / "src" / "pkg" / "deep.py").write_text("")
    return tmp_path


def test_children_are_sorted_by_name(project_dir):
    root = load_tree(str(project_dir))
    assert [child.name for child in root.children] == ["a.txt", "b.txt", "src"]


def test_files_have_no_children(project_dir):
    root = load_tree(str(project_dir))
    a_file = root.children[0]
    assert a_file.is_folder is False
    assert a_file.children is None
    with pytest.raises(ValueError):
        a_file.add_child(FileNode("x", "/x", False))


def test_parent_is_a_weak_back_reference(project_dir):
    root = load_tree(str(project_dir))
    src = root.children[2]
    assert src.parent is root

    orphan = src.children[0]
    del root, src
    gc.collect()
    assert orphan.parent is None


def test_remove_detaches_node(project_dir):
    root = load_tree(str(project_dir))
    b_file = root.children[1]
    assert b_file.remove() is True
    assert [child.name for child in root.children] == ["a.txt", "src"]
    assert b_file.parent is None
    assert b_file.remove() is False


def test_remove_root_is_a_no_op(project_dir):
    root = load_tree(str(project_dir))
    assert root.remove() is False


@pytest.mark.parametrize("max_depth, expected_names", [
    (0, []),
    (1, ["a.txt", "b.txt", "src"]),
    (2, ["a.txt", "b.txt", "src", "main.py", "pkg"]),
    (None, ["a.txt", "b.txt", "src", "main.py", "pkg", "deep.py"]),
])
def test_max_depth_limits_folder_levels(project_dir, max_depth, expected_names):
    root = load_tree(str(project_dir), max_depth=max_depth)
    names = [node.name for depth, node in root.walk() if depth > 0]
    assert names == expected_names


def test_symlinked_folder_is_listed_but_not_entered(tmp_path):
    (tmp_path / "real").mkdir()
    (tmp_path / "real" / "inside.txt").write_text("")
    os.symlink(tmp_path, tmp_path / "real" / "loop")
    root = load_tree(str(tmp_path))
    loop = [node for _, node in root.walk() if node.name == "loop"][0]
    assert loop.is_folder
    assert loop.children == []


def test_unreadable_folder_is_left_empty(tmp_path, mocker):
    mocker.patch("plainterm.file_tree.os.scandir", side_effect=PermissionError("denied"))
    root = load_tree(str(tmp_path))
    assert root.is_folder
    assert root.children == []


def test_render_tree(project_dir):
    rendered = render_tree(load_tree(str(project_dir)))
    assert rendered.splitlines() == [
        f"{project_dir.name}/",
        "  a.txt",
        "  b.txt",
        "  src/",
        "    main.py",
        "    pkg/",
        "      deep.py",
    ]
