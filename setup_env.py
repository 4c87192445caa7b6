#!/usr/bin/env python3
"""
Setup script to create a .env file for filterclause.
Run this script and follow the prompts to configure your environment.
"""

from pathlib import Path

DEFAULTS = {
    "FILTERCLAUSE_CONFIG_FILE": "config/filters.yaml",
    "FILTERCLAUSE_PARAM_PREFIX": "p",
    "FILTERCLAUSE_PARAMSTYLE": "named",
    "FILTERCLAUSE_LOG_LEVEL": "WARNING",
}

PARAMSTYLES = ("named", "pyformat")


def render_env(values):
    """Return the .env text for *values*, filling gaps from DEFAULTS."""
    v = {**DEFAULTS, **{k: s for k, s in values.items() if s}}
    if not v["FILTERCLAUSE_PARAM_PREFIX"].isidentifier():
        raise ValueError(f"parameter prefix must be an identifier: {v['FILTERCLAUSE_PARAM_PREFIX']!r}")
    if v["FILTERCLAUSE_PARAMSTYLE"] not in PARAMSTYLES:
        raise ValueError(f"paramstyle must be one of {', '.join(PARAMSTYLES)}")
    return f"""# Filter configuration
FILTERCLAUSE_CONFIG_FILE={v['FILTERCLAUSE_CONFIG_FILE']}

# Bind parameters ('named' -> :p1, 'pyformat' -> %(p1)s)
FILTERCLAUSE_PARAM_PREFIX={v['FILTERCLAUSE_PARAM_PREFIX']}
FILTERCLAUSE_PARAMSTYLE={v['FILTERCLAUSE_PARAMSTYLE']}

# Logging
FILTERCLAUSE_LOG_LEVEL={v['FILTERCLAUSE_LOG_LEVEL'].upper()}
"""


def create_env_file():
    """Interactive setup for .env file"""
    env_path = Path(".env")

    if env_path.exists():
        response = input(".env file already exists. Overwrite? (y/N): ")
        if response.lower() != 'y':
            print("Setup cancelled.")
            return

    print("=== filterclause Environment Setup ===\n")

    print("1. FILTER CONFIGURATION")
    config_file = input(f"   Filter config file [{DEFAULTS['FILTERCLAUSE_CONFIG_FILE']}]: ").strip()

    print("\n2. BIND PARAMETERS")
    prefix = input(f"   Parameter prefix [{DEFAULTS['FILTERCLAUSE_PARAM_PREFIX']}]: ").strip()
    paramstyle = input(f"   Paramstyle ({'/'.join(PARAMSTYLES)}) [{DEFAULTS['FILTERCLAUSE_PARAMSTYLE']}]: ").strip()

    print("\n3. LOGGING")
    log_level = input(f"   Log level [{DEFAULTS['FILTERCLAUSE_LOG_LEVEL']}]: ").strip()

    env_content = render_env({
        "FILTERCLAUSE_CONFIG_FILE": config_file,
        "FILTERCLAUSE_PARAM_PREFIX": prefix,
        "FILTERCLAUSE_PARAMSTYLE": paramstyle,
        "FILTERCLAUSE_LOG_LEVEL": log_level,
    })

    with open(env_path, 'w') as f:
        f.write(env_content)

    print(f"\n✅ .env file created successfully!")
    print(f"📁 Location: {env_path.absolute()}")


if __name__ == "__main__":
    create_env_file()
