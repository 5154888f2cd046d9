"""Write the webhook service's OpenAPI schema to disk."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from app.main import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the nag bot webhook OpenAPI schema")
    parser.add_argument("--output", type=Path, default=Path("openapi.json"), help="Destination file")
    args = parser.parse_args()

    schema = create_app().openapi()
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(schema, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    print(f"OpenAPI schema written to {args.output}")


if __name__ == "__main__":
    main()
