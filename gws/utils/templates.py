import re
from typing import Dict, List, Optional

PLACEHOLDER = re.compile(r"{{\s*([A-Za-z0-9_]+)\s*}}")


def render_template(template: str, variables: Dict[str, Optional[str]]) -> str:
    """Replace {{NAME}} placeholders; missing or empty values render as ''."""
    def _sub(match):
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(_sub, template)


def missing_variables(template: str, variables: Dict[str, Optional[str]]) -> List[str]:
    missing = []
    for name in PLACEHOLDER.findall(template):
        if not variables.get(name) and name not in missing:
            missing.append(name)
    return missing
