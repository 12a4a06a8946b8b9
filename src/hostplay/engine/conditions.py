"""
Hostplay Conditions

Parser and evaluator for task ``when`` expressions.

The grammar is deliberately tiny::

    condition := IDENT ("==" | "!=") LITERAL
    LITERAL   := changed | unchanged | failed | "quoted" | 'quoted'

The identifier names a register set by an earlier task on the same host;
the comparison is against that result's status.
"""

import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from hostplay.engine.errors import ConditionParseError, EvalError
from hostplay.engine.results import TaskResult, TaskStatus


STATUS_KEYWORDS = frozenset(s.value for s in (
    TaskStatus.CHANGED,
    TaskStatus.UNCHANGED,
    TaskStatus.FAILED,
))


class Operator(enum.Enum):
    EQ = "=="
    NE = "!="


@dataclass(frozen=True)
class Literal:
    value: str
    quoted: bool = False


@dataclass(frozen=True)
class Condition:
    """Parsed ``IDENT OP LITERAL`` expression."""

    register: str
    operator: Operator
    literal: Literal
    source: str = ""

    def __str__(self) -> str:
        return self.source or f"{self.register} {self.operator.value} {self.literal.value}"


class RegisterLookup(Protocol):
    def get(self, name: str) -> Optional[TaskResult]: ...


_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<op>==|!=)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<string>"[^"]*"|'[^']*')
""", re.VERBOSE)


def _tokenize(text: str) -> List[Tuple[str, str, int]]:
    tokens = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ConditionParseError(text, f"unexpected character {text[pos]!r}", pos)
        kind = match.lastgroup
        if kind != 'ws':
            tokens.append((kind, match.group(), pos))
        pos = match.end()
    return tokens


def parse_condition(text: str) -> Condition:
    """
    Parse a ``when`` expression.

    Raises:
        ConditionParseError: If the text does not match the grammar
    """
    tokens = _tokenize(text)
    if not tokens:
        raise ConditionParseError(text, "empty condition")

    kind, register, pos = tokens[0]
    if kind != 'ident':
        raise ConditionParseError(text, "expected a register name", pos)

    if len(tokens) < 2 or tokens[1][0] != 'op':
        pos = tokens[1][2] if len(tokens) > 1 else len(text)
        raise ConditionParseError(text, "expected '==' or '!='", pos)
    op = tokens[1][1]

    if len(tokens) < 3:
        raise ConditionParseError(text, "missing value after operator", len(text))

    k3, raw, p3 = tokens[2]
    if k3 == 'string':
        literal = Literal(raw[1:-1], quoted=True)
    elif k3 == 'ident' and raw in STATUS_KEYWORDS:
        literal = Literal(raw)
    else:
        allowed = ", ".join(sorted(STATUS_KEYWORDS))
        raise ConditionParseError(text, f"expected one of {allowed} or a quoted string", p3)

    if len(tokens) > 3:
        raise ConditionParseError(text, "unexpected trailing input", tokens[3][2])

    return Condition(
        register=register,
        operator=Operator(op),
        literal=literal,
        source=text.strip(),
    )


def evaluate_condition(condition: Condition, registers: RegisterLookup) -> bool:
    """
    Evaluate a parsed condition against a host's registers.

    Raises:
        EvalError: If the register has not been set on this host
    """
    result = registers.get(condition.register)
    if result is None:
        raise EvalError(str(condition), f"register '{condition.register}' is not set")

    equal = result.status.value == condition.literal.value
    if condition.operator is Operator.EQ:
        return equal
    return not equal


def evaluate_when(text: str, registers: RegisterLookup) -> bool:
    """Convenience function: parse then evaluate."""
    return evaluate_condition(parse_condition(text), registers)
