"""``folio config`` subcommands."""

from cyclopts import App

from folio_sync.config import KNOWN_KEYS, SECRET_KEYS, get_config

config_app = App(name="config", help="Read and change folio settings")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Store a setting, e.g. ``folio config set api.base_url http://localhost:3000``.

    Args:
        key: Dotted setting name, see ``folio config keys``
        value: New value
        global_: Write to ~/.folio instead of ./.folio
    """
    get_config(use_global=global_).set(key, value)
    shown = "********" if key in SECRET_KEYS else value
    print(f"{key} = {shown} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a setting so its default applies again."""
    get_config(use_global=global_).unset(key)
    print(f"Removed {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print one setting."""
    value = get_config(use_global=global_).get(key)
    print(f"{key} is not set" if value is None else f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """Print every setting in effect. Tokens are masked."""
    values = get_config(use_global=global_).list()
    if not values:
        print(f"No {_scope(global_)} settings")
        return
    for key in sorted(values):
        print(f"{key} = {'********' if key in SECRET_KEYS else values[key]}")


@config_app.command
def keys() -> None:
    """Describe the settings folio reads."""
    width = max(len(key) for key in KNOWN_KEYS)
    for key, description in KNOWN_KEYS.items():
        print(f"{key:<{width}}  {description}")
