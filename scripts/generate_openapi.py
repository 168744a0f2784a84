"""Write the chat API's openapi.json for the widget's client code generation."""

import json
import sys
from pathlib import Path

from chat_bridge.main import app


def main(output: Path = Path("openapi.json")) -> int:
    schema = app.openapi()
    output.write_text(json.dumps(schema, indent=2, ensure_ascii=False) + "\n")
    print(f"Generated {output} ({len(schema['paths'])} endpoints)")
    return len(schema["paths"])


if __name__ == "__main__":
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else Path("openapi.json"))
