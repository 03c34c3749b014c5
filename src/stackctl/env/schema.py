"""Environment variable schema patching.

The platform package declares every server environment variable inside the
``server: { ... }`` object of a ``createEnv`` call::

    server: {
      // Better Auth
      BETTER_AUTH_SECRET: z.string().min(32),
      NODE_ENV: z
        .enum(['development', 'production', 'test'])
        .default('development'),
    },

These functions read and rewrite that block as text. Everything outside the
declaration lines they touch is preserved byte for byte.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stackctl.errors import SchemaParseError

if TYPE_CHECKING:
    from stackctl.providers import ProviderDefinition

_BLOCK_START = re.compile(r"\bserver\s*:\s*\{")
_DECLARATION = re.compile(r"^([A-Z][A-Z0-9_]*)\s*:\s*(z\b.*)$")
_VAR_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")
_OPTIONAL_SUFFIX = ".optional()"
DEFAULT_INDENT = "    "


@dataclass(frozen=True)
class EnvVarDefinition:
    """A single declared environment variable.

    ``validator`` is the opaque validator expression (e.g. ``z.string().url()``)
    without a trailing ``.optional()``; ``optional`` carries that instead.
    """

    name: str
    validator: str
    optional: bool = False
    comment: str | None = None

    def render(self, indent: str = DEFAULT_INDENT) -> list[str]:
        lines = []
        if self.comment:
            lines.append(f"{indent}// {self.comment}")
        suffix = _OPTIONAL_SUFFIX if self.optional else ""
        lines.append(f"{indent}{self.name}: {self.validator}{suffix},")
        return lines


@dataclass(frozen=True)
class _Declaration:
    definition: EnvVarDefinition
    start: int
    end: int
    comment_line: int | None


def is_valid_var_name(name: str) -> bool:
    """UPPER_SNAKE_CASE check used for new variable names."""
    return bool(_VAR_NAME.match(name))


def _scan_code(line: str) -> tuple[str, int]:
    """Strip a trailing // comment and measure bracket depth change.

    Quoted strings are skipped so URLs and brackets inside literals do not
    count.
    """
    depth = 0
    quote: str | None = None
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif ch == "/" and line.startswith("//", i):
            return line[:i], depth
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        i += 1
    return line, depth


def _find_block(source: str) -> tuple[int, int]:
    """Locate the braces of the ``server`` object.

    Returns:
        (index of the opening brace, index of the matching closing brace)

    Raises:
        SchemaParseError: If the block is missing or unbalanced
    """
    match = _BLOCK_START.search(source)
    if not match:
        raise SchemaParseError("Could not find server object in env schema source")

    open_idx = match.end() - 1
    depth = 0
    quote: str | None = None
    i = open_idx
    while i < len(source):
        ch = source[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif source.startswith("//", i):
            newline = source.find("\n", i)
            i = len(source) if newline == -1 else newline
            continue
        elif source.startswith("/*", i):
            close = source.find("*/", i + 2)
            if close == -1:
                break
            i = close + 2
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return open_idx, i
        i += 1

    raise SchemaParseError("Unbalanced braces in env schema server object")


def _split_block(source: str) -> tuple[str, list[str], str]:
    open_idx, close_idx = _find_block(source)
    return source[: open_idx + 1], source[open_idx + 1 : close_idx].split("\n"), source[close_idx:]


def _make_definition(name: str, expression: str, comment: str | None) -> EnvVarDefinition:
    expression = expression.rstrip().rstrip(",").rstrip()
    if expression.endswith(_OPTIONAL_SUFFIX):
        return EnvVarDefinition(
            name=name,
            validator=expression[: -len(_OPTIONAL_SUFFIX)],
            optional=True,
            comment=comment,
        )
    return EnvVarDefinition(
        name=name,
        validator=expression,
        optional=_OPTIONAL_SUFFIX in expression,
        comment=comment,
    )


def _parse_lines(lines: Sequence[str]) -> list[_Declaration]:
    declarations: list[_Declaration] = []
    in_block_comment = False
    i = 0

    while i < len(lines):
        stripped = lines[i].strip()

        if in_block_comment:
            if "*/" in stripped:
                in_block_comment = False
            i += 1
            continue
        if stripped.startswith("/*"):
            in_block_comment = "*/" not in stripped[2:]
            i += 1
            continue

        code, depth = _scan_code(stripped)
        match = _DECLARATION.match(code.strip())
        if not match:
            i += 1
            continue

        name = match.group(1)
        pieces = [match.group(2).strip()]
        start = end = i
        while True:
            if depth <= 0 and code.rstrip().endswith(","):
                break
            following = end + 1
            if following >= len(lines):
                break
            next_stripped = lines[following].strip()
            if depth <= 0 and not next_stripped.startswith("."):
                break
            end = following
            code, delta = _scan_code(next_stripped)
            depth += delta
            pieces.append(code.strip())

        comment_line: int | None = None
        comment: str | None = None
        if start > 0 and lines[start - 1].strip().startswith("//"):
            comment_line = start - 1
            comment = lines[start - 1].strip()[2:].strip()

        declarations.append(
            _Declaration(
                definition=_make_definition(name, "".join(pieces), comment),
                start=start,
                end=end,
                comment_line=comment_line,
            )
        )
        i = end + 1

    return declarations


def parse_env_schema(source: str) -> list[EnvVarDefinition]:
    """Parse every declaration in the server block, in file order.

    Raises:
        SchemaParseError: If the server block cannot be located
    """
    _, body, _ = _split_block(source)
    return [d.definition for d in _parse_lines(body)]


def extract_var_names(source: str) -> list[str]:
    """Declared variable names, sorted and without duplicates.

    Commented-out declarations are not included.

    Raises:
        SchemaParseError: If the server block cannot be located
    """
    return sorted({d.name for d in parse_env_schema(source)})


def _require_multiline(body: list[str]) -> None:
    if len(body) < 2:
        raise SchemaParseError("Env schema server object must span multiple lines")


def _detect_indent(body: Sequence[str], declarations: Sequence[_Declaration]) -> str:
    if declarations:
        line = body[declarations[0].start]
        return line[: len(line) - len(line.lstrip())]
    tail = body[-1]
    if tail.strip() == "":
        return tail + "  "
    return DEFAULT_INDENT


def _trim_blank_edges(middle: list[str]) -> list[str]:
    start, end = 0, len(middle)
    while start < end and not middle[start].strip():
        start += 1
    while end > start and not middle[end - 1].strip():
        end -= 1
    return middle[start:end]


def _collapse_blank_runs(middle: list[str]) -> list[str]:
    result: list[str] = []
    for line in middle:
        if not line.strip() and result and not result[-1].strip():
            continue
        result.append("" if not line.strip() else line)
    return result


def add_vars(source: str, definitions: Iterable[EnvVarDefinition]) -> str:
    """Append declarations just before the block's closing brace.

    New lines are preceded by one blank separator line when the block already
    has content; each definition's comment goes on its own line above it.

    Raises:
        SchemaParseError: If the server block cannot be located
        ValueError: If a name is already declared or repeated
    """
    definitions = list(definitions)
    if not definitions:
        return source

    head, body, tail = _split_block(source)
    _require_multiline(body)
    declarations = _parse_lines(body)

    seen = {d.definition.name for d in declarations}
    for definition in definitions:
        if definition.name in seen:
            raise ValueError(f"Variable {definition.name} already exists")
        seen.add(definition.name)

    indent = _detect_indent(body, declarations)
    middle = body[1:-1]
    while middle and not middle[-1].strip():
        middle.pop()

    # The previous last entry needs a trailing comma once something follows it
    if declarations and declarations[-1].end == len(middle):
        last = middle[-1]
        code, _ = _scan_code(last)
        if not code.rstrip().endswith(","):
            stripped_code = code.rstrip()
            middle[-1] = stripped_code + "," + last[len(stripped_code):]

    new_lines: list[str] = [""] if middle else []
    for definition in definitions:
        new_lines.extend(definition.render(indent))

    return head + "\n".join([body[0], *middle, *new_lines, body[-1]]) + tail


def remove_vars(source: str, names: Iterable[str]) -> str:
    """Remove declarations together with their immediately preceding comment.

    Names that are not declared are ignored. Blank lines left behind are
    trimmed at the block edges and collapsed to a single blank line.

    Raises:
        SchemaParseError: If the server block cannot be located
    """
    targets = set(names)
    head, body, tail = _split_block(source)
    declarations = [d for d in _parse_lines(body) if d.definition.name in targets]
    if not declarations:
        return source
    _require_multiline(body)

    drop: set[int] = set()
    for declaration in declarations:
        drop.update(range(declaration.start, declaration.end + 1))
        if declaration.comment_line is not None:
            drop.add(declaration.comment_line)

    middle = [
        line
        for index, line in enumerate(body[1:-1], start=1)
        if index not in drop
    ]
    middle = _collapse_blank_runs(_trim_blank_edges(middle))

    return head + "\n".join([body[0], *middle, body[-1]]) + tail


def update_for_provider(source: str, provider: ProviderDefinition) -> str:
    """Swap the schema's database variables for the provider's set.

    Every variable any provider manages is removed first, then the
    provider's own declarations are appended, so repeated application
    converges on the same text.
    """
    from stackctl.providers import all_database_env_var_names

    cleared = remove_vars(source, all_database_env_var_names())
    return add_vars(cleared, provider.schema_env_vars)
