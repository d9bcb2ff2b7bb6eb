import re
from collections.abc import Mapping

PLACEHOLDER = re.compile(r"\{+([a-zA-Z0-9_]+)\}+")
VARIABLE_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


def safe_format(template: str, variables: Mapping[str, str]) -> tuple[str, set[str]]:
    """
    Substitute {name} placeholders in a unit template.

    Unit files routinely contain braces that are not ours (``${HOME}`` in an
    ExecStart line, ``%{...}`` in specifiers), so only placeholders whose key is
    a known variable are replaced. Keys that look like one of our variable names
    (lowercase identifier) but have no value are reported back as unresolved;
    anything else is left untouched.

    Args:
        template: The unit template text
        variables: Values to substitute

    Returns:
        A tuple of (rendered_text, unresolved_variable_names)
    """
    unresolved = set()

    def replace(match):
        key = match.group(1)
        if _is_shell_expansion(match):
            return match.group(0)
        if key in variables:
            return str(variables[key])
        if VARIABLE_NAME.match(key):
            unresolved.add(key)
        return match.group(0)

    # {name} and {{name}} are both accepted, all surrounding braces are consumed
    result = PLACEHOLDER.sub(replace, template)
    return result, unresolved


def _is_shell_expansion(match: re.Match) -> bool:
    start = match.start()
    return start > 0 and match.string[start - 1] == "$"
