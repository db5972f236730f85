"""
Query filters for addressbook-query REPORTs (RFC 6352, section 10.5).

Filters are built from plain Python data, in one of two forms.

The simple form is a mapping from vCard property name to a condition::

    {"EMAIL": None}                      # EMAIL is not defined
    {"FN": "/doe/$"}                     # FN ends with "doe"
    {"EMAIL": ["TYPE", "/home/="]}       # EMAIL has a TYPE parameter equal to "home"

The elaborate form is a list of (property name, conditions) pairs,
optionally with a third element saying whether all conditions must match
(default: any).  The same property may appear several times::

    [
        ("EMAIL", ["/@example.com/$", "/@example.org/$"]),
        ("EMAIL", ["!/spam/", ["TYPE", "/work/"]], True),
        ("NICKNAME", []),                # NICKNAME is not defined
    ]

A text-match condition is written as ``[!]/needle/[^$=]``: a leading ``!``
negates the match, a trailing ``^`` means starts-with, ``$`` ends-with,
``=`` equals, and nothing means contains.  Matching is case insensitive.
"""
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import ClassVar
from typing import Optional
from typing import Tuple
from typing import Union

from carddav.elements import cdav
from carddav.elements.base import BaseElement
from carddav.lib.error import ValidationError

_TEXT_MATCH_SPEC = re.compile(r"^(!?)/(.*)/([$=^]?)$", re.DOTALL)


class MatchType(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"


_MODIFIERS = {
    "": MatchType.CONTAINS,
    "=": MatchType.EQUALS,
    "^": MatchType.STARTS_WITH,
    "$": MatchType.ENDS_WITH,
}


def _check_name(name: Any, what: str) -> str:
    if not isinstance(name, str) or not name:
        raise ValidationError(reason=f"{what} name must be a non-empty string, got {name!r}")
    return name


@dataclass(frozen=True)
class TextMatch:
    needle: str
    match_type: MatchType = MatchType.CONTAINS
    invert: bool = False

    COLLATION: ClassVar[str] = "i;unicode-casemap"

    @classmethod
    def parse(cls, spec: str) -> "TextMatch":
        if not isinstance(spec, str):
            raise ValidationError(reason=f"text match must be a string, got {spec!r}")
        m = _TEXT_MATCH_SPEC.match(spec)
        if not m:
            raise ValidationError(reason=f"not a valid text match: {spec!r}")
        return cls(
            needle=m.group(2),
            match_type=_MODIFIERS[m.group(3)],
            invert=m.group(1) == "!",
        )

    def to_element(self) -> Optional[BaseElement]:
        ## an empty needle matches anything, leaving it out means the
        ## surrounding filter only asks for the property to be defined
        if not self.needle:
            return None
        return cdav.TextMatch(
            self.needle,
            collation=self.COLLATION,
            negate=self.invert,
            match_type=self.match_type.value,
        )


@dataclass(frozen=True)
class ParamFilter:
    """A condition on a vCard property parameter.  No text match means is-not-defined."""

    param: str
    text_match: Optional[TextMatch] = None

    def __post_init__(self) -> None:
        _check_name(self.param, "parameter")

    @classmethod
    def parse(cls, spec: Any) -> "ParamFilter":
        if isinstance(spec, str) or not isinstance(spec, (list, tuple)) or len(spec) != 2:
            raise ValidationError(
                reason=f"parameter filter must be a [name, condition] pair, got {spec!r}"
            )
        param, condition = spec
        _check_name(param, "parameter")
        return cls(param, None if condition is None else TextMatch.parse(condition))

    def to_element(self) -> BaseElement:
        element = cdav.ParamFilter(name=self.param)
        if self.text_match is None:
            element += cdav.IsNotDefined()
        else:
            match = self.text_match.to_element()
            if match is not None:
                element += match
        return element


Condition = Union[TextMatch, ParamFilter]


@dataclass(frozen=True)
class PropFilter:
    """
    A filter on one vCard property.  ``conditions`` is either None,
    meaning the property must not be defined, or a non-empty tuple of
    conditions, combined with AND if match_all is set and OR otherwise.
    """

    name: str
    conditions: Optional[Tuple[Condition, ...]] = None
    match_all: bool = False

    def __post_init__(self) -> None:
        _check_name(self.name, "property")
        if self.conditions is not None and len(self.conditions) == 0:
            raise ValidationError(
                reason=f"property filter {self.name}: conditions must be None or non-empty"
            )

    @classmethod
    def parse(cls, name: Any, specs: Any, match_all: bool = False) -> "PropFilter":
        _check_name(name, "property")
        if specs is None:
            return cls(name, None, match_all)
        if isinstance(specs, str) or not isinstance(specs, (list, tuple)):
            raise ValidationError(
                reason=f"property filter {name}: conditions must be a list, got {specs!r}"
            )
        if None in specs:
            if len(specs) > 1:
                raise ValidationError(
                    reason=f"property filter {name}: is-not-defined (None) can't be combined with other conditions"
                )
            return cls(name, None, match_all)
        if not specs:
            return cls(name, None, match_all)
        try:
            conditions = tuple(
                TextMatch.parse(spec) if isinstance(spec, str) else ParamFilter.parse(spec)
                for spec in specs
            )
        except ValidationError as e:
            raise ValidationError(reason=f"property filter {name}: {e.reason}") from e
        return cls(name, conditions, match_all)

    def to_element(self) -> BaseElement:
        element = cdav.PropFilter(
            name=self.name, test="allof" if self.match_all else "anyof"
        )
        if self.conditions is None:
            element += cdav.IsNotDefined()
            return element
        for condition in self.conditions:
            child = condition.to_element()
            if child is not None:
                element += child
        return element


@dataclass(frozen=True)
class Filter:
    """A complete addressbook-query filter: one or more property filters"""

    prop_filters: Tuple[PropFilter, ...]
    match_all: bool = False

    @classmethod
    def from_conditions(cls, conditions: Any, match_all: bool = False) -> "Filter":
        """
        Build a filter from the simple (mapping) or elaborate (list of
        pairs) form described in the module documentation.  match_all
        selects whether all property filters must match, or any.

        Raises:
            ValidationError: if the conditions are malformed
        """
        if isinstance(conditions, Mapping):
            prop_filters = tuple(
                cls._from_simple(name, condition)
                for name, condition in conditions.items()
            )
        elif isinstance(conditions, (list, tuple)):
            prop_filters = tuple(cls._from_elaborate(item) for item in conditions)
        else:
            raise ValidationError(
                reason=f"filter conditions must be a mapping or a list, got {type(conditions).__name__}"
            )
        if not prop_filters:
            raise ValidationError(reason="filter without any conditions")
        return cls(prop_filters, match_all)

    @staticmethod
    def _from_simple(name: Any, condition: Any) -> PropFilter:
        if condition is None:
            return PropFilter.parse(name, None)
        if isinstance(condition, str):
            return PropFilter.parse(name, [condition])
        if isinstance(condition, (list, tuple)):
            return PropFilter.parse(name, [condition])
        raise ValidationError(
            reason=f"property filter {name}: unsupported condition {condition!r}"
        )

    @staticmethod
    def _from_elaborate(item: Any) -> PropFilter:
        if not isinstance(item, (list, tuple)) or len(item) not in (2, 3):
            raise ValidationError(
                reason=f"expected (property, conditions[, match_all]), got {item!r}"
            )
        name, specs = item[0], item[1]
        prop_match_all = bool(item[2]) if len(item) == 3 else False
        return PropFilter.parse(name, specs, prop_match_all)

    def to_element(self) -> BaseElement:
        element = cdav.Filter(test="allof" if self.match_all else "anyof")
        element += [prop_filter.to_element() for prop_filter in self.prop_filters]
        return element

    def __str__(self) -> str:
        return str(self.to_element())
