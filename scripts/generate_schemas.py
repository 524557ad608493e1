"""Generate JSON schemas for the report file formats and save to schemas/ directory."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codeanchor.contracts import AnchorResult, VerificationRecord
from codeanchor.kernel.digest import DigestRules


SCHEMAS = {
    "verification_report.schema.json": VerificationRecord,
    "anchor_result.schema.json": AnchorResult,
    "digest_rules.schema.json": DigestRules,
}


def generate_schemas():
    """Generate JSON schemas for all file-format models."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    for filename, model in SCHEMAS.items():
        schema = model.model_json_schema()
        schema_path = schemas_dir / filename
        with open(schema_path, 'w', encoding='utf-8') as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)
        print(f"Generated: {schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
