"""CLI for inspecting a permission catalog file."""

import sys

import yaml

from .common.logger import configure_from_settings
from .core.config import get_settings
from .core.rbac.loader import load_catalog


def main(argv=None):
    """Main entry point for the catalog CLI."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Usage: python -m castellan <catalog.yaml> [handle ...]", file=sys.stderr)
        sys.exit(1)

    catalog_path, handles = args[0], args[1:]

    configure_from_settings(get_settings())

    try:
        catalog = load_catalog(catalog_path)
    except (FileNotFoundError, TypeError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    unknown = [h for h in handles if not catalog.exists(h)]
    definitions = catalog.filter(handle=handles) if handles else catalog.all()

    for definition in definitions:
        print(f"Permission: {definition.handle}")
        print(f"  Label: {definition.label or '-'}")
        print(f"  Actor types: {', '.join(sorted(definition.actor_types)) or 'any'}")
        print(f"  Scope types: {', '.join(sorted(definition.scope_types)) or 'any'}")
        implied = sorted(catalog.implied_by(definition.handle))
        print(f"  Implies: {', '.join(implied) or '-'}")

    for handle in unknown:
        print(f"Error: permission '{handle}' is not registered", file=sys.stderr)

    sys.exit(1 if unknown else 0)


if __name__ == "__main__":
    main()
