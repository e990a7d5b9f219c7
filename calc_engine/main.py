# main.py

"""
Overview of Implementation Approach
-----------------------------------
This file implements the engine behind a keypad calculator: the widget collects key presses, keeps a single
display string, and asks the engine to evaluate it when "=" is pressed. The engine is split into three pure
components, and a small reducer ties them to the keypad:

- Sanitizer: given the current display and the next key, returns the next display. Keys that would make the
  display malformed are silently ignored so the user never sees an error while typing.
- Evaluator: tokenizes a display string and folds it strictly left to right, like a handheld calculator
  (2+3*4 is 20, not 14). Division by zero is reported separately from malformed input.
- Formatter: renders a result with floating-point noise trimmed (0.1+0.2 shows as 0.3).
- Keypad state: an immutable CalculatorState and a pure press(state, key) reducer that reproduces the widget's
  behaviour for digits, operators, DEL, C and "=".
- CLIHandler: a terminal REPL that feeds typed keys through the reducer.

Failures never travel as message text. Every failure carries a stable ResultKind discriminant, either on a
tagged EvaluationResult or on a CalculatorError subclass.

Modules, Classes, and Functions Implemented
-------------------------------------------
- Imports: argparse, logging, math, os, re, dataclasses, typing, dotenv
- Discriminants: ResultKind
- Error classes: CalculatorError, DivisionByZeroError, InvalidExpressionError, OutOfRangeError
- Tokenizer: Token, TokenType, Tokenizer
- Sanitizer: sanitize, sanitize_input_sequence
- Evaluator: Evaluator, EvaluationResult, evaluate, evaluate_expression
- Formatter: format_result
- Keypad state: CalculatorState, normalize_key, press, press_keys, screen_text, status_text
- HelpHandler, CLIHandler, main()
"""

import argparse
import logging
import math
import os
import re
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# ---------------------------
# Constants
# ---------------------------

DIGITS = '0123456789'
DECIMAL_POINT = '.'
OPERATORS = '+-*/'

# Rounding applied before display so binary float noise never reaches the screen.
MAX_SIGNIFICANT_DIGITS = 12
MAX_DECIMALS = 10
# 12-digit display; anything at or above this cannot be shown without exponent notation.
MAX_DISPLAY_MAGNITUDE = 1e12

ERROR_TEXT = 'Error'
DIV_ZERO_TEXT = 'Error: Division by zero'


# ---------------------------
# Discriminants
# ---------------------------

class ResultKind:
    """Stable discriminants for evaluation outcomes."""
    NUMBER = 'NUMBER'
    DIV_ZERO = 'DIV_ZERO'
    INVALID_EXPRESSION = 'INVALID_EXPRESSION'
    OUT_OF_RANGE = 'OUT_OF_RANGE'


# ---------------------------
# Error Classes
# ---------------------------

class CalculatorError(Exception):
    """Base class for calculator errors. Callers branch on `kind`, not on the message."""
    kind = ResultKind.INVALID_EXPRESSION

class DivisionByZeroError(CalculatorError):
    """Raised when the right operand of '/' is zero."""
    kind = ResultKind.DIV_ZERO

class InvalidExpressionError(CalculatorError):
    """Raised for malformed input: trailing operator, empty operand, unparsable numeral."""
    kind = ResultKind.INVALID_EXPRESSION

class OutOfRangeError(CalculatorError):
    """Raised when an operand or running total overflows to infinity or NaN."""
    kind = ResultKind.OUT_OF_RANGE


# ---------------------------
# Tokenizer
# ---------------------------

class TokenType:
    """Enumeration of token types."""
    NUMBER = 'NUMBER'
    PLUS = 'PLUS'
    MINUS = 'MINUS'
    MUL = 'MUL'
    DIV = 'DIV'
    EOF = 'EOF'

OPERATOR_TOKENS = (TokenType.PLUS, TokenType.MINUS, TokenType.MUL, TokenType.DIV)

class Token:
    """
    Represents a token in the input stream.
    """
    def __init__(self, type_: str, value: Optional[Union[float, str]] = None, pos: int = 0):
        self.type = type_
        self.value = value
        self.pos = pos

    def __repr__(self):
        return f"Token({self.type}, {self.value}, pos={self.pos})"

class Tokenizer:
    """
    Converts a display string into a list of tokens.

    Consecutive digits and '.' form one NUMBER token. A '-' seen before any other token is the sign of the
    first operand and is folded into its value; every other operator character is its own token.
    """
    token_specification = [
        ('NUMBER',  r'[0-9]+\.?[0-9]*|\.[0-9]+'),  # 12, 12., 12.5, .5
        ('PLUS',    r'\+'),
        ('MINUS',   r'-'),
        ('MUL',     r'\*'),
        ('DIV',     r'/'),
        ('SKIP',    r'\s+'),
        ('MISMATCH',r'.'),
    ]
    tok_regex = '|'.join(f'(?P<{name}>{pattern})' for name, pattern in token_specification)
    get_token = re.compile(tok_regex).match

    def __init__(self, text: str):
        if not isinstance(text, str):
            raise InvalidExpressionError(f"Expected a string, got {type(text).__name__}")
        self.text = text
        self.tokens: List[Token] = []
        self._tokenize()

    def _tokenize(self):
        """
        Tokenizes the input string into a list of Token objects.
        """
        sign_pos: Optional[int] = None
        pos = 0
        mo = self.get_token(self.text)
        while mo is not None:
            kind = mo.lastgroup
            value = mo.group()
            if kind == 'NUMBER':
                number = float(value)
                if sign_pos is not None:
                    number = -number
                    pos = sign_pos
                    sign_pos = None
                self.tokens.append(Token(TokenType.NUMBER, number, pos))
            elif kind == 'MINUS' and not self.tokens:
                if sign_pos is not None:
                    raise InvalidExpressionError(f"Unexpected operator '-' at position {pos}")
                sign_pos = pos
            elif kind in OPERATOR_TOKENS:
                if sign_pos is not None:
                    raise InvalidExpressionError(f"Unexpected operator '{value}' at position {pos}")
                self.tokens.append(Token(kind, value, pos))
            elif kind == 'MISMATCH':
                raise InvalidExpressionError(f"Unexpected character '{value}' at position {pos}")
            pos = mo.end()
            mo = self.get_token(self.text, pos)
        if sign_pos is not None:
            raise InvalidExpressionError(f"Missing operand after '-' at position {sign_pos}")
        self.tokens.append(Token(TokenType.EOF, None, pos))


# ---------------------------
# Sanitizer
# ---------------------------

def _active_segment(display: str) -> str:
    """Returns the operand segment being typed: everything after the last operator."""
    for index in range(len(display) - 1, -1, -1):
        if display[index] in OPERATORS:
            return display[index + 1:]
    return display

def sanitize(current: str, next_char: str) -> str:
    """
    Returns the display that results from typing `next_char` after `current`.

    Keys that would break the display invariants are dropped and `current` is returned unchanged:
    - only '-' may start the display, as the sign of the first operand;
    - no operator may directly follow another operator;
    - an operand segment holds at most one '.'.

    Two keys are normalized instead of appended: '.' on an empty segment becomes '0.', and a digit typed
    onto a segment that is exactly '0' replaces that zero.
    """
    current = current or ''
    if not isinstance(next_char, str) or len(next_char) != 1:
        return current

    if next_char in OPERATORS:
        if not current:
            return '-' if next_char == '-' else current
        if current[-1] in OPERATORS:
            return current
        return current + next_char

    segment = _active_segment(current)
    if next_char == DECIMAL_POINT:
        if DECIMAL_POINT in segment:
            return current
        if not segment:
            return current + '0.'
        return current + DECIMAL_POINT

    if next_char in DIGITS:
        if segment == '0':
            return current[:-1] + next_char
        return current + next_char

    return current

# Name used by the keypad widget.
sanitize_input_sequence = sanitize


# ---------------------------
# Evaluator
# ---------------------------

@dataclass(frozen=True)
class EvaluationResult:
    """Tagged outcome of an evaluation. `value` is set only when kind is NUMBER."""
    kind: str
    value: Optional[float] = None
    message: str = ''

    @property
    def ok(self) -> bool:
        return self.kind == ResultKind.NUMBER

    @classmethod
    def number(cls, value: float) -> 'EvaluationResult':
        return cls(ResultKind.NUMBER, value)

    @classmethod
    def from_error(cls, error: CalculatorError) -> 'EvaluationResult':
        return cls(error.kind, None, str(error))

class Evaluator:
    """
    Folds a token list strictly left to right: each operator is applied to the running total and the next
    operand as soon as it is read. There is no precedence, so 2+3*4 is (2+3)*4.
    """
    def eval(self, tokens: List[Token]) -> float:
        if not tokens or tokens[0].type == TokenType.EOF:
            raise InvalidExpressionError("Empty expression")
        total = self._operand(tokens[0])
        index = 1
        while tokens[index].type != TokenType.EOF:
            op_token = tokens[index]
            if op_token.type not in OPERATOR_TOKENS:
                raise InvalidExpressionError(
                    f"Expected operator, got '{op_token.value}' at position {op_token.pos}")
            operand_token = tokens[index + 1]
            if operand_token.type == TokenType.EOF:
                raise InvalidExpressionError(
                    f"Missing operand after '{op_token.value}' at position {op_token.pos}")
            total = self.apply(total, op_token.type, self._operand(operand_token))
            if not math.isfinite(total):
                raise OutOfRangeError(f"Result out of range after '{op_token.value}' at position {op_token.pos}")
            index += 2
        return total

    def _operand(self, token: Token) -> float:
        if token.type != TokenType.NUMBER:
            raise InvalidExpressionError(f"Expected number, got '{token.value}' at position {token.pos}")
        if not math.isfinite(token.value):
            raise OutOfRangeError(f"Number out of range at position {token.pos}")
        return token.value

    def apply(self, left: float, op: str, right: float) -> float:
        if op == TokenType.PLUS:
            return left + right
        elif op == TokenType.MINUS:
            return left - right
        elif op == TokenType.MUL:
            return left * right
        elif op == TokenType.DIV:
            if right == 0:
                raise DivisionByZeroError("Division by zero")
            return left / right
        else:
            raise InvalidExpressionError(f"Unknown operator: {op}")

def evaluate_expression(display: str) -> float:
    """
    Evaluates a display string and returns its value.

    Raises DivisionByZeroError, InvalidExpressionError or OutOfRangeError; each carries a `kind` discriminant.
    """
    tokens = Tokenizer(display).tokens
    return Evaluator().eval(tokens)

def evaluate(expression: str) -> EvaluationResult:
    """Evaluates a display string without raising; failures come back as tagged results."""
    try:
        return EvaluationResult.number(evaluate_expression(expression))
    except CalculatorError as e:
        return EvaluationResult.from_error(e)


# ---------------------------
# Formatter
# ---------------------------

def _format_number(value: float) -> Optional[str]:
    if not math.isfinite(value):
        return None
    rounded = float(f"{value:.{MAX_SIGNIFICANT_DIGITS}g}")
    if abs(rounded) >= MAX_DISPLAY_MAGNITUDE:
        return None
    text = f"{rounded:.{MAX_DECIMALS}f}"
    if DECIMAL_POINT in text:
        text = text.rstrip('0').rstrip(DECIMAL_POINT)
    if text == '-0':
        text = '0'
    return text

def format_result(result: Union[float, int, EvaluationResult, CalculatorError, str, None]) -> str:
    """
    Renders a result for the display.

    Numbers (plain or wrapped in a NUMBER EvaluationResult) are rounded to hide float noise and printed
    without trailing zeros. Every failure signal, including numbers too large to display, renders as the
    literal "Error".
    """
    if isinstance(result, EvaluationResult):
        if not result.ok or result.value is None:
            return ERROR_TEXT
        result = result.value
    if isinstance(result, bool) or not isinstance(result, (int, float)):
        return ERROR_TEXT
    try:
        value = float(result)
    except OverflowError:
        return ERROR_TEXT
    text = _format_number(value)
    return ERROR_TEXT if text is None else text


# ---------------------------
# Keypad State
# ---------------------------

CLEAR_KEY = 'C'
DELETE_KEY = 'DEL'
EQUALS_KEY = '='

KEY_ALIASES = {
    'Enter': EQUALS_KEY,
    '=': EQUALS_KEY,
    'Backspace': DELETE_KEY,
    DELETE_KEY: DELETE_KEY,
    'Escape': CLEAR_KEY,
    CLEAR_KEY: CLEAR_KEY,
}

@dataclass(frozen=True)
class CalculatorState:
    """Everything the widget shows. Never mutated; press() returns a new state."""
    display: str = ''
    last_result: Optional[str] = None
    error: str = ''

def normalize_key(key: Optional[str]) -> Optional[str]:
    """Maps a keyboard key or keypad label to a keypad key, or None if the key is not handled."""
    if not isinstance(key, str):
        return None
    if len(key) == 1 and (key in DIGITS or key in OPERATORS or key == DECIMAL_POINT):
        return key
    return KEY_ALIASES.get(key)

def _press_equals(state: CalculatorState) -> CalculatorState:
    if not state.display:
        return state
    result = evaluate(state.display)
    if result.kind == ResultKind.DIV_ZERO:
        logger.debug("Division by zero in %r", state.display)
        return replace(state, error=DIV_ZERO_TEXT)
    formatted = format_result(result)
    if formatted == ERROR_TEXT:
        logger.debug("Cannot evaluate %r: %s", state.display, result.message or 'out of range')
        return replace(state, error=ERROR_TEXT)
    return CalculatorState(display=formatted, last_result=formatted, error='')

def press(state: CalculatorState, key: str) -> CalculatorState:
    """
    Returns the state after one key press.

    Digits, '.' and operators go through the sanitizer and clear any error. DEL drops the last character,
    C resets everything, and '=' evaluates the display. Unknown keys leave the state untouched.
    """
    key = normalize_key(key)
    if key is None:
        return state
    if key == CLEAR_KEY:
        return CalculatorState()
    if key == DELETE_KEY:
        return replace(state, display=state.display[:-1], error='')
    if key == EQUALS_KEY:
        return _press_equals(state)
    return replace(state, display=sanitize(state.display, key), error='')

def press_keys(state: CalculatorState, keys: Iterable[str]) -> CalculatorState:
    for key in keys:
        state = press(state, key)
    return state

def screen_text(state: CalculatorState) -> str:
    if state.display:
        return state.display
    return state.last_result if state.last_result is not None else ''

def status_text(state: CalculatorState) -> str:
    return f"Last: {state.last_result}" if state.last_result is not None else 'Ready'


# ---------------------------
# Help Handler
# ---------------------------

class HelpHandler:
    """
    Prints usage instructions for the calculator.
    """
    HELP_TEXT = """
Keypad Calculator Help
----------------------
Type keys the way you would press them on a handheld calculator.
A line may hold several keys at once, e.g. 12+3=

Keys:
  - Digits and '.' :  0-9 .
  - Operators      :  + - * /
  - Evaluate       :  =
  - Delete         :  DEL (removes the last character)
  - Clear          :  C

Notes:
  - Operators are applied left to right: 2+3*4= shows 20
  - Only the first number may carry a '-' sign
  - Invalid keys are ignored

Special commands:
  - help      : Show this help message
  - exit/quit : Exit the calculator

Examples:
  > 0.1+0.2=
  0.3
  > 5/0=
  Error: Division by zero
"""

    @staticmethod
    def print_help():
        print(HelpHandler.HELP_TEXT.strip())


# ---------------------------
# CLI Handler (REPL)
# ---------------------------

class CLIHandler:
    """
    Handles the REPL loop. Each line is a sequence of keys fed through press().
    """
    PROMPT = '> '
    WORD_KEYS = {'C': CLEAR_KEY, 'CLEAR': CLEAR_KEY, 'DEL': DELETE_KEY}

    def __init__(self, state: Optional[CalculatorState] = None):
        self.state = state or CalculatorState()
        self.running = True

    def keys_for(self, line: str) -> List[str]:
        """Splits an input line into keypad keys. Whole-word keys (C, DEL) are matched first."""
        word = line.upper()
        if word in self.WORD_KEYS:
            return [self.WORD_KEYS[word]]
        return [ch for ch in line if not ch.isspace()]

    def render(self):
        print(screen_text(self.state) or '0')
        if self.state.error:
            print(self.state.error)

    def handle_line(self, line: str):
        keys = self.keys_for(line)
        logger.debug("Keys: %s", keys)
        self.state = press_keys(self.state, keys)
        self.render()

    def run(self):
        """
        Main REPL loop.
        """
        while self.running:
            try:
                line = input(self.PROMPT)
            except (EOFError, KeyboardInterrupt):
                print()
                break

            line = line.strip()
            if not line:
                continue

            if line.lower() in ('exit', 'quit'):
                self.running = False
                print("Goodbye!")
                break
            elif line.lower() == 'help':
                HelpHandler.print_help()
                continue

            self.handle_line(line)


# ---------------------------
# Main Entry Point
# ---------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keypad calculator with left-to-right evaluation.")
    parser.add_argument(
        "-e", "--expression",
        type=str,
        help="Evaluate a single expression, print the result and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.getenv("CALC_LOG_LEVEL", "WARNING"),
        help="Logging level (default: CALC_LOG_LEVEL or WARNING).",
    )
    return parser

def run_expression(expression: str) -> int:
    """Prints the formatted result of one expression; returns the process exit status."""
    result = evaluate(expression)
    if result.kind == ResultKind.DIV_ZERO:
        print(DIV_ZERO_TEXT)
        return 1
    formatted = format_result(result)
    print(formatted)
    return 0 if formatted != ERROR_TEXT else 1

def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the calculator application.
    """
    load_dotenv()
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.expression is not None:
        return run_expression(args.expression)

    print("Welcome to the Keypad Calculator!")
    print("Type 'help' for instructions, or 'exit' to quit.")
    cli = CLIHandler()
    cli.run()
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
