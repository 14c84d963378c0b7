"""Resolve quick-launch links and project paths into something to open."""

from dataclasses import dataclass
from typing import Literal

from folio_sync.models import Link, Project

LaunchMode = Literal["open", "copy"]


@dataclass(frozen=True)
class LaunchTarget:
    mode: LaunchMode
    value: str


def editor_uri(path: str, path_type: str, wsl_distro: str = "Ubuntu") -> str:
    """Build a VS Code URI for a local path."""
    if path_type == "wsl":
        if not path.startswith("/"):
            path = "/" + path
        return f"vscode://vscode-remote/wsl+{wsl_distro}{path}"
    return f"vscode://file/{path.replace(chr(92), '/')}"


def launch_target(link: Link) -> LaunchTarget:
    if link.link_type == "url":
        if not link.url:
            raise ValueError(f"Link '{link.name}' has no URL")
        return LaunchTarget(mode="open", value=link.url)
    if not link.path:
        raise ValueError(f"Link '{link.name}' has no path")
    if link.link_type == "vscode":
        return LaunchTarget(mode="open", value=editor_uri(link.path, link.path_type, link.wsl_distro))
    return LaunchTarget(mode="copy", value=link.path)


def project_launch_uri(project: Project) -> str:
    if not project.local_path:
        raise ValueError(f"Project '{project.title}' has no local path")
    return editor_uri(project.local_path, project.path_type, project.wsl_distro)
