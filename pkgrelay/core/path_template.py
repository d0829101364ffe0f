"""Path template validation: placeholder counting and rendering.

A template such as ``/registries/{bucket}/packages`` carries one named
placeholder per ``{...}`` occurrence.  A rule is well-formed only when it
supplies exactly one parameter value per placeholder, in left-to-right
order.  Everything here is pure: no registry or network state is touched.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from pkgrelay.errors import RelayError

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")


class RuleDefinitionError(RelayError, ValueError):
    """Raised when a rule cannot be registered.

    For placeholder/value mismatches ``expected`` and ``given`` carry the
    two counts; both are ``None`` for other definition errors such as a
    duplicate key.
    """

    def __init__(
        self,
        message: str,
        *,
        rule_name: str | None = None,
        expected: int | None = None,
        given: int | None = None,
    ) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.expected = expected
        self.given = given


class TemplateValidation(BaseModel):
    """Outcome of checking a template against its parameter values.

    ``query_placeholders`` counts placeholders written after ``?``.  Those
    are never substituted, so any such placeholder makes the template
    invalid regardless of the counts.
    """

    model_config = ConfigDict(frozen=True)

    template: str
    expected: int
    given: int
    query_placeholders: int = 0

    @property
    def ok(self) -> bool:
        return self.expected == self.given and not self.query_placeholders

    @property
    def message(self) -> str:
        if self.query_placeholders:
            return (
                f"{self.template!r} has {self.query_placeholders} placeholder(s) "
                "in its query string; bind query values with query_mapping"
            )
        if self.ok:
            return f"{self.template!r}: {self.expected} placeholder(s), {self.given} value(s)"
        return (
            f"{self.template!r} has {self.expected} placeholder(s) "
            f"but {self.given} path parameter value(s) were given"
        )


def placeholder_names(template: str) -> list[str]:
    """Return placeholder names in left-to-right order.

    >>> placeholder_names("/registries/{bucket}/packages/{name}")
    ['bucket', 'name']
    """
    return PLACEHOLDER_PATTERN.findall(template)


def count_placeholders(template: str) -> int:
    return len(placeholder_names(template))


def validate_path_template(template: str, values: Sequence[str]) -> TemplateValidation:
    """Compare the placeholder count of *template* with ``len(values)``.

    Never raises; inspect ``.ok`` on the result.
    """
    _, sep, query = template.partition("?")
    return TemplateValidation(
        template=template,
        expected=count_placeholders(template),
        given=len(values),
        query_placeholders=count_placeholders(query) if sep else 0,
    )


def check_path_template(
    template: str, values: Sequence[str], *, rule_name: str | None = None
) -> TemplateValidation:
    """Validate and raise ``RuleDefinitionError`` if the template is unusable."""
    result = validate_path_template(template, values)
    if not result.ok:
        prefix = f"Rule {rule_name!r}: " if rule_name else ""
        raise RuleDefinitionError(
            prefix + result.message,
            rule_name=rule_name,
            expected=result.expected,
            given=result.given,
        )
    return result


def strip_query(template: str) -> str:
    """Drop any literal query string (``?...``) written into a template."""
    return template.split("?", 1)[0]


def render_path(template: str, values: Sequence[str]) -> str:
    """Substitute resolved *values* into the placeholders of *template*.

    Each value is quoted as a single path segment, so ``"a/b"`` cannot
    change the shape of the route.  The template is checked with the same
    rules as registration, then any literal query string is dropped.
    """
    check_path_template(template, values)
    remaining = iter(values)
    return PLACEHOLDER_PATTERN.sub(
        lambda _match: quote(str(next(remaining)), safe=""), strip_query(template)
    )
