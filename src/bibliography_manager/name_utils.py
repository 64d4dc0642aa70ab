"""
Name parsing utilities.

Sources keep authors as plain strings ("Smith, John" or "John Smith");
bibliography formats want structured CSL names ({"family": ..., "given": ...}).
"""
from typing import Any, Dict, List

# Lowercase particles that belong to the surname ("Ludwig van Beethoven")
NAME_PARTICLES = {
    "van", "von", "der", "den", "ter", "ten",
    "de", "del", "della", "di", "da", "dos", "du",
    "la", "le", "lo", "las", "los"
}


def split_name(name: str) -> Dict[str, str]:
    """
    Convert a name string into a CSL name object.

    Examples:
        "Smith, John"            -> {"family": "Smith", "given": "John"}
        "John Smith"             -> {"family": "Smith", "given": "John"}
        "Juan Carlos de la Cruz" -> {"family": "de la Cruz", "given": "Juan Carlos"}
        "{World Health Organization}" -> {"literal": "World Health Organization"}
    """
    name = (name or "").strip()
    if name.startswith("{") and name.endswith("}"):
        return {"literal": name[1:-1].strip()}

    parts = [p.strip() for p in name.split(",")]
    if len(parts) == 2:
        family, given = parts
        result = {"family": family}
        if given:
            result["given"] = given
        return result

    tokens = parts[0].split()
    if not tokens:
        return {"literal": name}
    if len(tokens) == 1:
        return {"family": tokens[0]}

    # walk back from the last token, absorbing surname particles
    i = len(tokens) - 2
    while i > 0 and (tokens[i].lower() in NAME_PARTICLES or tokens[i].islower()):
        i -= 1
    given = " ".join(tokens[:i + 1])
    family = " ".join(tokens[i + 1:])
    return {"family": family, "given": given}


def format_name(name: Any) -> str:
    """Render a CSL name object as ``"Family, Given"``."""
    if isinstance(name, str):
        return name
    if not isinstance(name, dict):
        return str(name)
    if name.get("literal"):
        return name["literal"]
    family = name.get("family", "")
    given = name.get("given", "")
    if family and given:
        return f"{family}, {given}"
    return family or given or "Unknown Author"


def names_to_csl(names: Any) -> List[Dict[str, str]]:
    """Convert a list of name strings (or a single string) to CSL names."""
    if not names:
        return []
    if isinstance(names, str):
        names = [names]
    result = []
    for name in names:
        if isinstance(name, dict):
            result.append(name)
        elif str(name).strip():
            result.append(split_name(str(name)))
    return result
