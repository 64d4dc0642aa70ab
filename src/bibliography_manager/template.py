"""
Note templates.

Templates are plain text with ``{{field}}`` placeholders. A placeholder is
replaced by the value of the field (dotted paths walk nested mappings) or by
an empty string when the field is missing. There is no logic, no loops and no
escaping beyond the helper fields built by ``build_template_data``:

- ``<field>Array``: a list rendered as a YAML flow sequence
- ``<field>Yaml``: a string rendered as a double-quoted YAML scalar
- ``authorList``: authors joined with ", "
- ``atcitekey``: the citekey with an ``@`` prefix (quoted in ``atcitekeyYaml``)
- ``filename``: the note's filename without extension
"""
import json
import logging
import re
from dataclasses import asdict, is_dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from .citekey import CitekeyGenerator
from .config import DEFAULT_SOURCE_NOTE_TEMPLATE, Settings

if TYPE_CHECKING:
    from .vault import Vault

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")

# Fields that stay lists (and get an empty YAML array) when unset
ARRAY_FIELDS = ("author", "keywords")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(_to_text(v) for v in value)
    return str(value)


def get_nested_value(data: Mapping[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if isinstance(current, Mapping) and key in current:
            current = current[key]
        else:
            return None
    return current


def render_template(template: str, data: Mapping[str, Any]) -> str:
    """Replace every ``{{ path }}`` placeholder with its value."""
    def replace(match: 're.Match[str]') -> str:
        value = get_nested_value(data, match.group(1).strip())
        return _to_text(value) if value is not None else ""

    return PLACEHOLDER_RE.sub(replace, template)


def format_yaml_array(values: Optional[List[Any]]) -> str:
    """Render a list as a YAML flow sequence, e.g. ``["Smith, John", 2]``."""
    if not values:
        return "[]"

    items = []
    for item in values:
        if isinstance(item, bool):
            items.append("true" if item else "false")
        elif isinstance(item, (int, float)):
            items.append(str(item))
        else:
            escaped = str(item).replace('"', '\\"')
            items.append(f'"{escaped}"')
    return f"[{', '.join(items)}]"


def format_yaml_string(value: str) -> str:
    """Render a string as a double-quoted YAML scalar."""
    return json.dumps(value, ensure_ascii=False)


def build_template_data(source: Any) -> Dict[str, Any]:
    """Flatten a source record into the variables available to templates."""
    record = asdict(source) if is_dataclass(source) else dict(source)
    data: Dict[str, Any] = {}

    for field_name, value in record.items():
        if value is None or (field_name in ARRAY_FIELDS and value == ""):
            if field_name in ARRAY_FIELDS:
                data[field_name] = []
                data[field_name + "Array"] = "[]"
            else:
                data[field_name] = ""
        elif isinstance(value, (list, tuple)):
            data[field_name] = list(value)
            data[field_name + "Array"] = format_yaml_array(list(value))
        elif isinstance(value, str):
            data[field_name] = value
            data[field_name + "Yaml"] = format_yaml_string(value)
        else:
            data[field_name] = _to_text(value)

    author = record.get("author")
    if isinstance(author, (list, tuple)):
        data["authorList"] = ", ".join(str(a) for a in author)
    else:
        data["authorList"] = author or ""

    if record.get("citekey"):
        data["atcitekey"] = f"@{record['citekey']}"
        data["atcitekeyYaml"] = format_yaml_string(data["atcitekey"])

    if not data.get("filename"):
        data["filename"] = CitekeyGenerator.sanitize_filename(record.get("title") or "")
    data["filenameYaml"] = format_yaml_string(data["filename"])

    return data


def render_source_note(source: Any, template: Optional[str] = None,
                       filename: Optional[str] = None) -> str:
    """Render the content of a source note."""
    if template and template.strip():
        data = build_template_data(source)
        if filename:
            data["filename"] = filename
            data["filenameYaml"] = format_yaml_string(filename)
        return render_template(template, data)

    logger.warning("No template loaded, using fallback note layout")
    return render_fallback_note(source)


def render_fallback_note(source: Any) -> str:
    """Frontmatter with every non-empty field and an empty note skeleton."""
    record = asdict(source) if is_dataclass(source) else dict(source)
    lines = ["---"]
    for key, value in record.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            if value:
                lines.append(f"{key}: {json.dumps(list(value), ensure_ascii=False)}")
        elif isinstance(value, str):
            lines.append(f"{key}: {format_yaml_string(value)}")
        else:
            lines.append(f"{key}: {_to_text(value)}")
    lines.append("---")
    lines.append("")
    lines.append("# Summary")
    lines.append("")
    lines.append("# Notes")
    lines.append("")
    return "\n".join(lines)


def load_template(settings: Settings, vault: 'Vault') -> str:
    """
    Resolve the note template for a vault.

    The default template is used unless ``settings.template_file`` names an
    existing file in the vault.
    """
    settings.source_note_template = DEFAULT_SOURCE_NOTE_TEMPLATE
    template_file = (settings.template_file or "").strip()
    if not template_file:
        return settings.source_note_template

    try:
        if vault.exists(template_file):
            settings.source_note_template = vault.read(template_file)
            logger.info(f"Loaded template from file: {template_file}")
        else:
            logger.warning(f"Template file not found: {template_file}. Using default template.")
    except OSError as e:
        logger.error(f"Error loading template file: {e}")
        settings.source_note_template = DEFAULT_SOURCE_NOTE_TEMPLATE

    return settings.source_note_template
