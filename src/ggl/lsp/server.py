"""GGL Language Server — diagnostics, completion, hover via pygls."""

from __future__ import annotations

import re

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from ggl.generators import GENERATORS, PARAM_KINDS
from ggl.parsing.parser import GGLParser

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "graph": "Optional wrapper naming the program: graph name { ... }",
    "let": "Bind a variable: let name [: type] = expr;",
    "for": "Loop over an integer range: for i in lo..hi { ... } (hi excluded)",
    "in": "Used with 'for ... in lo..hi'",
    "if": "Conditional block: if cond { ... } else { ... }",
    "else": "Alternative branch of an 'if'",
    "node": "Declare a node: node id [: type] [key=value, ...];",
    "edge": "Declare an edge: edge [id]: a -> b (directed) or a -- b (undirected)",
    "generate": "Run a topology generator: generate name { param: value; ... }",
    "rule": "Define a rewrite rule: rule name { lhs { ... } rhs { ... } }",
    "lhs": "Pattern a rule matches",
    "rhs": "Replacement for the matched pattern",
    "apply": "Apply a rule repeatedly: apply name N times;",
    "times": "Used with 'apply name N times'",
    "true": "Boolean literal",
    "false": "Boolean literal",
}

PARAM_DESCRIPTIONS: dict[str, str] = {
    "nodes": "Number of nodes (leaves for star)",
    "rows": "Number of grid rows",
    "cols": "Number of grid columns",
    "depth": "Tree depth below the root",
    "branching": "Children per tree node",
    "edges_per_node": "Edges each new node attaches with (alias 'm')",
    "seed": "Random seed (default 42)",
    "directed": "Create directed edges",
    "periodic": "Wrap grid rows and columns into a torus",
    "prefix": "Node id prefix (default \"n\")",
}

# Regex to extract position from GGLParser error messages
_POSITION_RE = re.compile(r"(?:at position|\(position) (\d+)")

# Regex to find the generator a parameter block belongs to
_GENERATE_RE = re.compile(r"\bgenerate\s+(\w+)\s*\{[^{}]*$")

# Regex to find user-defined rule names in source
_RULE_RE = re.compile(r"\brule\s+(\w+)")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def lexpos_to_position(source: str, lexpos: int) -> types.Position:
    """Convert a character offset into an LSP ``Position(line, character)``."""
    line = source.count("\n", 0, lexpos)
    last_nl = source.rfind("\n", 0, lexpos)
    character = lexpos if last_nl == -1 else lexpos - last_nl - 1
    return types.Position(line=line, character=character)


def _extract_position_from_error(message: str) -> int | None:
    """Return the integer position embedded in a SyntaxError message, or None."""
    m = _POSITION_RE.search(message)
    return int(m.group(1)) if m else None


def _find_rules(source: str) -> list[str]:
    """Return rule names defined in *source*."""
    return [m.group(1) for m in _RULE_RE.finditer(source)]


def _enclosing_generator(text_before: str) -> str | None:
    """Name of the generator whose open parameter block precedes the cursor."""
    m = _GENERATE_RE.search(text_before)
    return m.group(1) if m else None


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    ch = line_text[character]
    if not (ch.isalnum() or ch == "_"):
        return ""
    left = character
    while left > 0 and (line_text[left - 1].isalnum() or line_text[left - 1] == "_"):
        left -= 1
    right = character
    while right < len(line_text) and (line_text[right].isalnum() or line_text[right] == "_"):
        right += 1
    return line_text[left:right]


def _generator_signature(name: str) -> str:
    spec = GENERATORS[name]
    params = list(spec.required) + [f"{p}?" for p in spec.optional] + ["prefix?"]
    return f"{name}({', '.join(params)})"


def completion_items(text_before: str, source: str) -> list[types.CompletionItem]:
    """Completion candidates for the cursor position described by *text_before*."""
    items: list[types.CompletionItem] = []
    stripped = text_before.rstrip()

    if re.search(r"\bgenerate$", stripped):
        for name, spec in GENERATORS.items():
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Function,
                    detail=_generator_signature(name),
                    documentation=spec.description,
                )
            )
        return items

    if re.search(r"\bapply$", stripped):
        for name in _find_rules(source):
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Class,
                    detail="Rule",
                )
            )
        return items

    generator = _enclosing_generator(text_before)
    if generator in GENERATORS:
        for param in GENERATORS[generator].parameters + ["prefix"]:
            items.append(
                types.CompletionItem(
                    label=param,
                    kind=types.CompletionItemKind.Property,
                    detail=f"{PARAM_KINDS[param]} - {PARAM_DESCRIPTIONS[param]}",
                    insert_text=f"{param}: ",
                )
            )
        return items

    for keyword, desc in KEYWORDS.items():
        items.append(
            types.CompletionItem(
                label=keyword,
                kind=types.CompletionItemKind.Keyword,
                detail=desc,
            )
        )
    return items


def hover_text(word: str) -> str | None:
    """Markdown hover content for a keyword, generator or parameter name."""
    if word in KEYWORDS:
        return f"**{word}** — {KEYWORDS[word]}"
    if word in GENERATORS:
        return f"**{_generator_signature(word)}** — {GENERATORS[word].description}"
    if word in PARAM_DESCRIPTIONS:
        return f"**{word}** ({PARAM_KINDS[word]}) — {PARAM_DESCRIPTIONS[word]}"
    return None


def syntax_diagnostics(source: str, parser: GGLParser) -> list[types.Diagnostic]:
    """Parse *source* and return an error diagnostic for the first syntax error."""
    try:
        parser.parse(source)
    except SyntaxError as exc:
        msg = str(exc)
        pos_int = _extract_position_from_error(msg)
        if pos_int is not None:
            start = lexpos_to_position(source, pos_int)
        else:
            # Fallback: end of document
            lines = source.split("\n")
            start = types.Position(line=max(len(lines) - 1, 0), character=0)
        end = types.Position(line=start.line, character=start.character + 1)
        return [
            types.Diagnostic(
                range=types.Range(start=start, end=end),
                severity=types.DiagnosticSeverity.Error,
                source="ggl",
                message=msg,
            )
        ]
    return []


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("ggl-language-server", "0.1.0")
_parser = GGLParser()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    diagnostics = syntax_diagnostics(doc.source, _parser)
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[" ", "{", ";"]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line = params.position.line
    line_text = doc.lines[line] if line < len(doc.lines) else ""
    text_before = "".join(doc.lines[:line]) + line_text[: params.position.character]
    items = completion_items(text_before, doc.source)
    return types.CompletionList(is_incomplete=False, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    line_text = doc.lines[params.position.line]
    word = _word_at_position(line_text, params.position.character)
    if not word:
        return None

    content = hover_text(word)
    if content is None:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=content,
        )
    )


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
