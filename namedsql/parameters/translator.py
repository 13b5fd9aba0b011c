"""Named placeholder translation.

Rewrites ``:name`` placeholders into the driver's positional placeholder and
records the names in the order they appear, one entry per occurrence.
"""

import re
from typing import Final

from mypy_extensions import mypyc_attr

from namedsql.parameters.types import ParameterStyle, TranslatedSQL

__all__ = ("PlaceholderTranslator", "count_placeholders", "escape_percent_literals", "translate")


# Literals and comments are matched first so placeholders inside them are skipped.
_PLACEHOLDER_REGEX: Final = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*") |
    (?P<squote>'(?:[^'\\]|\\.)*') |
    (?P<dollar_quoted_string>\$(?P<dollar_quote_tag_inner>\w*)?\$[\s\S]*?\$(?P=dollar_quote_tag_inner)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<pg_cast>::\w+) |
    (?P<named_colon>:(?P<colon_name>\w+))
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)

_POSITIONAL_REGEX: Final = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*") |
    (?P<squote>'(?:[^'\\]|\\.)*') |
    (?P<dollar_quoted_string>\$(?P<dollar_quote_tag_inner>\w*)?\$[\s\S]*?\$(?P=dollar_quote_tag_inner)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<pg_q_operator>\?\?|\?\||\?&) |
    (?P<pg_cast>::\w+) |
    (?P<qmark>\?) |
    (?P<pyformat_pos>%s) |
    (?P<numeric>\$(?P<numeric_num>\d+)) |
    (?P<positional_colon>:(?P<colon_num>\d+))
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)


def count_placeholders(sql: str, style: ParameterStyle = ParameterStyle.QMARK) -> int:
    """Count the positional slots of ``style`` in ``sql``.

    Numbered styles count up to the highest number used; the others count
    occurrences. Literals and comments are ignored.
    """
    count = 0
    for match in _POSITIONAL_REGEX.finditer(sql):
        if style is ParameterStyle.QMARK and match.group("qmark"):
            count += 1
        elif style is ParameterStyle.POSITIONAL_PYFORMAT and match.group("pyformat_pos"):
            count += 1
        elif style is ParameterStyle.NUMERIC and match.group("numeric_num"):
            count = max(count, int(match.group("numeric_num")))
        elif style is ParameterStyle.POSITIONAL_COLON and match.group("colon_num"):
            count = max(count, int(match.group("colon_num")))
    return count


def escape_percent_literals(sql: str) -> str:
    """Double every ``%`` in ``sql`` except those of ``%s`` placeholders.

    Format-style drivers apply ``%`` formatting to the whole statement, so a
    literal percent sign has to reach them as ``%%``. ``%s`` inside literals
    and comments is not a placeholder and is doubled as well.

    Example:
        >>> escape_percent_literals("select * from t where a like 'x%' and b = %s")
        "select * from t where a like 'x%%' and b = %s"
    """
    if "%" not in sql:
        return sql
    parts: list[str] = []
    current_pos = 0
    for match in _POSITIONAL_REGEX.finditer(sql):
        if match.group("pyformat_pos") is None:
            continue
        parts.append(sql[current_pos : match.start()].replace("%", "%%"))
        parts.append("%s")
        current_pos = match.end()
    parts.append(sql[current_pos:].replace("%", "%%"))
    return "".join(parts)


@mypyc_attr(allow_interpreted_subclasses=False)
class PlaceholderTranslator:
    """Translate named placeholders, caching results per SQL text and style."""

    __slots__ = ("_cache", "_cache_size")

    DEFAULT_CACHE_SIZE: Final[int] = 1000

    def __init__(self, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self._cache: dict[tuple[str, ParameterStyle], TranslatedSQL] = {}
        self._cache_size = cache_size

    def translate(self, sql: str, target_style: ParameterStyle = ParameterStyle.QMARK) -> TranslatedSQL:
        """Rewrite ``:name`` placeholders to ``target_style``.

        Args:
            sql: SQL text, possibly with named placeholders.
            target_style: Positional style the driver expects.

        Returns:
            The rewritten SQL and the placeholder names in order of appearance.
            SQL without named placeholders is returned unchanged.
        """
        key = (sql, target_style)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        parts: list[str] = []
        identifiers: list[str] = []
        current_pos = 0
        for match in _PLACEHOLDER_REGEX.finditer(sql):
            name = match.group("colon_name")
            if name is None:
                continue
            parts.append(sql[current_pos : match.start()])
            parts.append(target_style.placeholder(len(identifiers)))
            identifiers.append(name)
            current_pos = match.end()

        if not identifiers:
            result = TranslatedSQL(sql, ())
        else:
            parts.append(sql[current_pos:])
            result = TranslatedSQL("".join(parts), tuple(identifiers))

        if len(self._cache) < self._cache_size:
            self._cache[key] = result
        return result

    def clear_cache(self) -> None:
        """Drop all cached translations."""
        self._cache.clear()


_default_translator = PlaceholderTranslator()


def translate(sql: str, target_style: ParameterStyle = ParameterStyle.QMARK) -> TranslatedSQL:
    """Translate ``sql`` with the shared :class:`PlaceholderTranslator`.

    Example:
        >>> translate("select a from t where c1=:x and c2=:y")
        TranslatedSQL(sql='select a from t where c1=? and c2=?', identifiers=('x', 'y'))
    """
    return _default_translator.translate(sql, target_style)
