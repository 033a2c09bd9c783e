"""config command: show/set/unset project configuration."""

from ..utils import colorize


def cmd_config(args) -> int:
    """Handle config subcommands: show, set, unset."""
    action = getattr(args, "config_action", None)
    if action == "set":
        return _config_set(args)
    if action == "unset":
        return _config_unset(args)
    return _config_show(args)


def _config_show(args) -> int:
    """Print all config keys with current values and descriptions."""
    from ..config import CONFIG_SCHEMA

    config = args._config

    print(colorize("\n  peeklint configuration\n", "bold"))
    for key, schema in CONFIG_SCHEMA.items():
        value = config.get(key, schema.default)
        is_default = value == schema.default

        if isinstance(value, list):
            display = ", ".join(value) if value else "(empty)"
        else:
            display = str(value)

        default_tag = colorize(" (default)", "dim") if is_default else ""
        print(f"  {key:<15} {display}{default_tag}")
        print(colorize(f"  {'':15} {schema.description}", "dim"))
    print()
    return 0


def _config_set(args) -> int:
    """Set a config key to a value."""
    from ..config import save_config, set_config_value

    config = args._config
    key = args.config_key

    try:
        set_config_value(config, key, args.config_value)
    except (KeyError, ValueError) as e:
        print(colorize(f"  Error: {e}", "red"))
        return 1

    save_config(config)
    print(colorize(f"  Set {key} = {config[key]}", "green"))
    return 0


def _config_unset(args) -> int:
    """Reset a config key to its default."""
    from ..config import CONFIG_SCHEMA, save_config, unset_config_value

    config = args._config
    key = args.config_key

    try:
        unset_config_value(config, key)
    except KeyError as e:
        print(colorize(f"  Error: {e}", "red"))
        return 1

    save_config(config)
    print(colorize(f"  Reset {key} to default ({CONFIG_SCHEMA[key].default})", "green"))
    return 0
