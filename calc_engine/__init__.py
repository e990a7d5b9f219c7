"""
Keypad calculator engine: sanitizer, left-to-right evaluator, result formatter and keypad state reducer.
"""

from calc_engine.main import (
    CalculatorError,
    CalculatorState,
    DivisionByZeroError,
    EvaluationResult,
    InvalidExpressionError,
    OutOfRangeError,
    ResultKind,
    evaluate,
    evaluate_expression,
    format_result,
    normalize_key,
    press,
    press_keys,
    sanitize,
    sanitize_input_sequence,
    screen_text,
    status_text,
)

__all__ = [
    # Errors and discriminants
    "CalculatorError",
    "DivisionByZeroError",
    "InvalidExpressionError",
    "OutOfRangeError",
    "ResultKind",
    # Core
    "EvaluationResult",
    "evaluate",
    "evaluate_expression",
    "format_result",
    "sanitize",
    "sanitize_input_sequence",
    # Keypad state
    "CalculatorState",
    "normalize_key",
    "press",
    "press_keys",
    "screen_text",
    "status_text",
]
