"""Tests for link and project launch targets."""

import pytest

from folio_sync.launch import LaunchTarget, editor_uri, launch_target, project_launch_uri
from folio_sync.models import Link, Project


def test_editor_uri_wsl() -> None:
    """Test that WSL paths open through the remote extension."""
    assert editor_uri("/home/me/app", "wsl", "Debian") == "vscode://vscode-remote/wsl+Debian/home/me/app"
    assert editor_uri("home/me/app", "wsl") == "vscode://vscode-remote/wsl+Ubuntu/home/me/app"


def test_editor_uri_windows_and_linux() -> None:
    """Test that native paths become file URIs with forward slashes."""
    assert editor_uri("C:\\code\\app", "windows") == "vscode://file/C:/code/app"
    assert editor_uri("/srv/app", "linux") == "vscode://file//srv/app"


def test_url_link_opens_url() -> None:
    """Test that URL links open their address."""
    link = Link(id="l-1", project_id="p-1", link_type="url", url="https://example.com")
    assert launch_target(link) == LaunchTarget(mode="open", value="https://example.com")


def test_vscode_link_opens_editor() -> None:
    """Test that editor links open the editor URI."""
    link = Link(id="l-1", project_id="p-1", link_type="vscode", path="/work", path_type="wsl")
    assert launch_target(link) == LaunchTarget(mode="open", value="vscode://vscode-remote/wsl+Ubuntu/work")


def test_directory_link_is_copied() -> None:
    """Test that directory links hand back the path to copy."""
    link = Link(id="l-1", project_id="p-1", link_type="directory", path="D:\\data")
    assert launch_target(link) == LaunchTarget(mode="copy", value="D:\\data")


def test_link_without_target_raises() -> None:
    """Test that links missing their URL or path are rejected."""
    with pytest.raises(ValueError, match="no URL"):
        launch_target(Link(id="l-1", project_id="p-1", link_type="url"))
    with pytest.raises(ValueError, match="no path"):
        launch_target(Link(id="l-2", project_id="p-1", link_type="vscode"))


def test_project_launch_uri(project: Project) -> None:
    """Test launching a project's local path."""
    with pytest.raises(ValueError, match="no local path"):
        project_launch_uri(project)

    windows = Project(id="p-2", title="Tool", local_path="C:\\tool", path_type="windows")
    assert project_launch_uri(windows) == "vscode://file/C:/tool"
