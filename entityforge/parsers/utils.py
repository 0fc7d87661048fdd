import re
from typing import List, Optional

import sqlparse
from sqlparse.tokens import Punctuation

from entityforge.constants import STATEMENT_KEYWORDS

# One identifier: "quoted", `quoted`, [quoted] or bare
IDENTIFIER = r'(?:"[^"]+"|`[^`]+`|\[[^\]]+\]|[\w$]+)'
# Optionally schema-qualified identifier
QUALIFIED_IDENTIFIER = rf'{IDENTIFIER}(?:\s*\.\s*{IDENTIFIER})*'

_IDENTIFIER_PART = re.compile(IDENTIFIER)
# Same escapes sqlparse's lexer accepts: doubled quote or backslash-quote
_STRING_LITERAL = re.compile(r"'(?:''|\\'|[^'])*'")
# $$ or $tag$ opening a dollar-quoted body
_DOLLAR_TAG = re.compile(r'\$(?:[A-Za-z_]\w*)?\$')


def strip_comments(sql: str) -> str:
    """
    Removes ``--`` line comments and ``/* */`` block comments.

    Quoted text (single, double, backtick and ``$tag$`` quoting) is copied
    verbatim, so a default value such as ``'a--b'`` survives. Block comments
    nest; an unclosed one runs to the end of the input.
    """
    if not sql:
        return ""

    result = []
    i = 0
    n = len(sql)
    nesting = 0
    in_quote = False
    quote_char = None
    in_line_comment = False

    while i < n:
        char = sql[i]
        next_char = sql[i+1] if i + 1 < n else ''

        if in_line_comment:
            if char == '\n':
                in_line_comment = False
                result.append(char)
            i += 1
            continue

        if nesting > 0:
            if char == '/' and next_char == '*':
                nesting += 1
                i += 2
                continue
            if char == '*' and next_char == '/':
                nesting -= 1
                i += 2
                if nesting == 0:
                    # Keep tokens on either side of the comment apart
                    result.append(' ')
                continue
            i += 1
            continue

        if in_quote:
            result.append(char)
            if quote_char == "'" and char == '\\' and next_char == "'":
                result.append(next_char)
                i += 2
                continue
            if char == quote_char:
                if quote_char == "'" and next_char == "'":
                    result.append(next_char)
                    i += 2
                    continue
                in_quote = False
            i += 1
            continue

        if char in ("'", '"', '`'):
            in_quote = True
            quote_char = char
            result.append(char)
            i += 1
            continue

        # A $ inside an identifier such as price$usd never opens a body
        if char == '$' and not (i > 0 and (sql[i-1].isalnum() or sql[i-1] in '_$')):
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                end = sql.find(tag.group(0), tag.end())
                end = n if end == -1 else end + len(tag.group(0))
                result.append(sql[i:end])
                i = end
                continue

        if char == '-' and next_char == '-':
            in_line_comment = True
            i += 2
            continue

        if char == '/' and next_char == '*':
            nesting += 1
            i += 2
            continue

        result.append(char)
        i += 1

    return "".join(result)


def _starts_statement(tokens, start: int) -> bool:
    for token in tokens[start:]:
        if token.is_whitespace:
            continue
        return token.value.upper() in STATEMENT_KEYWORDS
    return False


def split_statements(sql: str) -> List[str]:
    """
    Splits SQL text into statements with sqlparse.

    sqlparse keeps a ``;`` inside an open parenthesis in the current
    statement. When such a semicolon is followed by a statement keyword the
    statement is cut there, so one unbalanced statement cannot swallow the
    rest. Empty statements are dropped and the terminating semicolon is
    removed.
    """
    statements = []

    def flush(values):
        stmt = "".join(values).strip().rstrip(';').strip()
        if stmt:
            statements.append(stmt)

    for parsed in sqlparse.parse(sql):
        tokens = list(parsed.flatten())
        current = []
        depth = 0
        for index, token in enumerate(tokens):
            if token.ttype is Punctuation:
                if token.value == '(':
                    depth += 1
                elif token.value == ')':
                    depth = max(depth - 1, 0)
                elif token.value == ';' and depth > 0 and _starts_statement(tokens, index + 1):
                    flush(current)
                    current = []
                    depth = 0
                    continue
            current.append(token.value)
        flush(current)

    return statements


def normalize_whitespace(sql: str) -> str:
    """Collapses every whitespace run to a single space."""
    return " ".join(sql.split())


def mask_string_literals(sql: str) -> str:
    """Replaces single-quoted literals with ``''`` so keyword scans skip them."""
    return _STRING_LITERAL.sub("''", sql)


def clean_name(name: str) -> str:
    """
    Returns the bare object name of a possibly quoted, possibly
    schema-qualified identifier. Case is preserved.
    """
    # Strip invisible characters like Zero Width Space (U+200B)
    name = name.replace(chr(0x200b), '').strip()
    parts = _IDENTIFIER_PART.findall(name)
    if parts:
        name = parts[-1]
    return name.strip('`"[] ')


def split_definitions(body: str) -> List[str]:
    """
    Splits the body of a CREATE TABLE column list on commas that are not
    nested in parentheses, so ``DECIMAL(10,2)`` stays whole.

    Works on sqlparse's flat token stream, so commas inside string
    literals never split.
    """
    if not body or not body.strip():
        return []

    parts = []
    current_tokens = []
    parenthesis_level = 0
    for statement in sqlparse.parse(body):
        for token in statement.flatten():
            if token.ttype is Punctuation and token.value == ',' and parenthesis_level == 0:
                parts.append("".join(current_tokens).strip())
                current_tokens = []
                continue
            if token.ttype is Punctuation:
                if token.value == '(':
                    parenthesis_level += 1
                elif token.value == ')':
                    parenthesis_level = max(parenthesis_level - 1, 0)
            current_tokens.append(token.value)

    if current_tokens:
        parts.append("".join(current_tokens).strip())

    return [p for p in parts if p]


def extract_parenthesized(text: str, open_index: int) -> Optional[str]:
    """
    Returns the text between the parenthesis at ``open_index`` and its
    matching close, or None when it is never closed. Parentheses are
    counted on sqlparse's tokens, so ones inside literals do not count.
    """
    depth = 0
    inner = []
    for statement in sqlparse.parse(text[open_index:]):
        for token in statement.flatten():
            if token.ttype is Punctuation and token.value == '(':
                depth += 1
                if depth == 1:
                    continue
            elif token.ttype is Punctuation and token.value == ')':
                depth -= 1
                if depth == 0:
                    return "".join(inner)
            inner.append(token.value)
    return None
