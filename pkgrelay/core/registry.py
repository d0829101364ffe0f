"""Dispatch rule registry: exact-match lookup by ``(event_source, event_type)``.

The registry is populated once at startup and then frozen.  After
``freeze()`` it is never written again, which is what lets any number of
concurrent event executions read it without locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import overload

from pkgrelay.core.path_template import RuleDefinitionError, check_path_template
from pkgrelay.errors import RelayError
from pkgrelay.models.config import DuplicatePolicy, RegistryConfig
from pkgrelay.models.rules import DispatchRule

logger = logging.getLogger(__name__)

__all__ = [
    "RegistryFrozenError",
    "RuleDefinitionError",
    "RuleListing",
    "RuleNotFoundError",
    "RuleRegistry",
]


class RuleNotFoundError(RelayError, LookupError):
    """Raised when no rule matches an event's ``(source, type)``."""

    def __init__(self, event_source: str, event_type: str) -> None:
        super().__init__(
            f"No dispatch rule for source={event_source!r} type={event_type!r}"
        )
        self.event_source = event_source
        self.event_type = event_type


class RegistryFrozenError(RelayError, RuntimeError):
    """Raised when registering into a registry that has been frozen."""


class RuleListing(Sequence[DispatchRule]):
    """Immutable, restartable view over a snapshot of registered rules.

    Iterating twice yields the same rules in the same order; two listings
    taken without an intervening ``register`` compare equal.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[DispatchRule]) -> None:
        self._rules = tuple(rules)

    @overload
    def __getitem__(self, index: int) -> DispatchRule: ...

    @overload
    def __getitem__(self, index: slice) -> RuleListing: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RuleListing(self._rules[index])
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[DispatchRule]:
        return iter(self._rules)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RuleListing):
            return self._rules == other._rules
        return NotImplemented

    def __repr__(self) -> str:
        return f"RuleListing({[rule.name for rule in self._rules]!r})"


class RuleRegistry:
    """Holds dispatch rules keyed by ``(event_source, event_type)``.

    Parameters
    ----------
    config:
        Registry configuration.  Supplies the duplicate-key policy and the
        rule table used by ``from_config``.

    Usage
    -----
    >>> registry = RuleRegistry(RegistryConfig())
    >>> registry.register(rule)
    >>> registry.freeze()
    >>> registry.lookup("quilt.pkg", "GetHealth")
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        self._config = config or RegistryConfig()
        self._rules: dict[tuple[str, str], DispatchRule] = {}
        self._frozen = False
        self._errors: tuple[RuleDefinitionError, ...] = ()

    @classmethod
    def from_config(cls, config: RegistryConfig, *, strict: bool = False) -> RuleRegistry:
        """Build and freeze a registry holding every well-formed configured rule.

        A bad rule only costs its own registration: the others are still
        registered, and the rejected ones are kept on ``errors``.  With
        ``strict=True`` the first error is raised after every rule has been
        attempted.
        """
        registry = cls(config)
        errors = registry.register_all(config.dispatch_rules())
        registry._errors = tuple(errors)
        registry.freeze()
        if errors:
            if strict:
                raise errors[0]
            logger.warning(
                "Rule registry started without %d rejected rule(s): %s",
                len(errors),
                ", ".join(str(exc.rule_name) for exc in errors),
            )
        return registry

    @property
    def errors(self) -> tuple[RuleDefinitionError, ...]:
        """Definition errors collected by ``from_config``."""
        return self._errors

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only for the rest of the process."""
        self._frozen = True
        logger.info("Rule registry frozen with %d rule(s)", len(self._rules))

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, rule: DispatchRule) -> None:
        """Validate and insert *rule*.

        Raises
        ------
        RuleDefinitionError
            If the path template and parameter counts disagree, or the key
            (or rule name) is already taken under the ``reject`` policy.
        RegistryFrozenError
            If the registry has been frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {rule.name!r}: registry is frozen"
            )

        check_path_template(
            rule.path_template, rule.path_param_values, rule_name=rule.name
        )

        existing = self._rules.get(rule.key)
        named = self._find_by_name(rule.name)
        if self._config.duplicate_policy == DuplicatePolicy.REJECT:
            if existing is not None:
                raise RuleDefinitionError(
                    f"Rule {rule.name!r}: key {rule.key!r} already registered "
                    f"by {existing.name!r}",
                    rule_name=rule.name,
                )
            if named is not None:
                raise RuleDefinitionError(
                    f"Rule name {rule.name!r} already registered for {named.key!r}",
                    rule_name=rule.name,
                )
        else:
            if existing is not None:
                logger.warning(
                    "Rule %s replaces %s for key %s", rule.name, existing.name, rule.key
                )
            if named is not None and named.key != rule.key:
                del self._rules[named.key]

        self._rules[rule.key] = rule
        logger.info(
            "Registered rule %s: %s/%s -> %s %s",
            rule.name,
            rule.event_source,
            rule.event_type,
            rule.method.value,
            rule.path_template,
        )

    def register_all(self, rules: Iterable[DispatchRule]) -> list[RuleDefinitionError]:
        """Register each rule; one bad rule does not stop the others.

        Returns the errors collected, in order.
        """
        errors: list[RuleDefinitionError] = []
        for rule in rules:
            try:
                self.register(rule)
            except RuleDefinitionError as exc:
                logger.error("Rejected rule %s: %s", rule.name, exc)
                errors.append(exc)
        return errors

    def _find_by_name(self, name: str) -> DispatchRule | None:
        for rule in self._rules.values():
            if rule.name == name:
                return rule
        return None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, event_source: str, event_type: str) -> DispatchRule:
        """Return the rule for an exact, case-sensitive key.

        Raises ``RuleNotFoundError`` when absent.
        """
        try:
            return self._rules[(event_source, event_type)]
        except KeyError:
            raise RuleNotFoundError(event_source, event_type) from None

    def get(self, event_source: str, event_type: str) -> DispatchRule | None:
        return self._rules.get((event_source, event_type))

    def list(self) -> RuleListing:
        """Snapshot of every registered rule, in registration order."""
        return RuleListing(self._rules.values())

    def getters(self) -> RuleListing:
        """Rules whose results are published to the notification topic."""
        return RuleListing(rule for rule in self._rules.values() if rule.notify)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, key: object) -> bool:
        return key in self._rules
