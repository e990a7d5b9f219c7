# main.py
"""
Keypad Calculator API with FastAPI

This application serves the keypad calculator engine over HTTP so a browser widget can keep all
of its arithmetic on the server. The service is stateless: the widget owns the calculator state
and sends it along with every key press, receiving the next state in return.

Implementation Approach:
1. Use FastAPI for creating API endpoints with automatic documentation
2. Define Pydantic models for request/response validation
3. Delegate all arithmetic to calc_engine (sanitize, evaluate, format, press)
4. Report evaluation failures as tagged results carrying a stable `kind`, not as HTTP errors
5. Read host, port, log level and CORS origins from the environment (.env supported)
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from calc_engine.main import (
    CalculatorState,
    ResultKind,
    evaluate,
    format_result,
    press,
    sanitize_input_sequence,
    screen_text,
    status_text,
)

load_dotenv()


def log_level() -> int:
    """Logging level named by CALC_LOG_LEVEL; unknown names fall back to INFO."""
    level = getattr(logging, os.getenv("CALC_LOG_LEVEL", "INFO").upper(), logging.INFO)
    return level if isinstance(level, int) else logging.INFO


# Configure logging
logging.basicConfig(
    level=log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def cors_origins() -> List[str]:
    """Origins allowed to call the API, from CALC_CORS_ORIGINS (comma separated)."""
    raw = os.getenv("CALC_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


# ----- Pydantic Models -----

class SanitizeRequest(BaseModel):
    """Model for a single key typed onto the current display."""
    current: str = ""
    next: str = Field(..., description="A single key: digit, '.', or one of + - * /")

    @field_validator('next')
    @classmethod
    def next_must_be_single_character(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError('next must be exactly one character')
        return v


class SanitizeResponse(BaseModel):
    """Model for the display after sanitization."""
    display: str


class EvaluateRequest(BaseModel):
    """Model for an expression to evaluate."""
    expression: str

    @field_validator('expression')
    @classmethod
    def expression_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Expression cannot be empty')
        return v


class EvaluateResponse(BaseModel):
    """Model for a tagged evaluation result."""
    kind: str = Field(..., description="NUMBER, DIV_ZERO, INVALID_EXPRESSION or OUT_OF_RANGE")
    value: Optional[float] = None
    formatted: str
    message: str = ""


class FormatRequest(BaseModel):
    """Model for a raw number to format."""
    value: float


class FormatResponse(BaseModel):
    """Model for a formatted number."""
    formatted: str


class StateModel(BaseModel):
    """Model for the calculator state owned by the widget."""
    display: str = ""
    last_result: Optional[str] = None
    error: str = ""

    def to_state(self) -> CalculatorState:
        return CalculatorState(display=self.display, last_result=self.last_result, error=self.error)

    @classmethod
    def from_state(cls, state: CalculatorState) -> "StateModel":
        return cls(display=state.display, last_result=state.last_result, error=state.error)


class KeypadRequest(BaseModel):
    """Model for a key press applied to a state."""
    state: StateModel = Field(default_factory=StateModel)
    key: str = Field(..., description="Keypad label or keyboard key name (Enter, Backspace, Escape)")


class KeypadResponse(BaseModel):
    """Model for the state after a key press, plus the texts the widget shows."""
    state: StateModel
    screen: str
    status: str


# ----- Application Lifecycle -----

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.
    """
    logger.info("Keypad Calculator API starting up")
    yield
    logger.info("Keypad Calculator API shutting down")

# Initialize FastAPI application with lifespan
app = FastAPI(
    title="Keypad Calculator API",
    description="Sanitize keypad input, evaluate expressions left to right and format results",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- API Routes -----

@app.get("/health", summary="Health check")
async def health():
    return {"status": "ok"}


@app.post(
    "/sanitize",
    response_model=SanitizeResponse,
    summary="Type a key onto the display",
    description="Return the display after typing one key; invalid keys leave the display unchanged",
)
async def sanitize_key(request: SanitizeRequest):
    display = sanitize_input_sequence(request.current, request.next)
    if display == request.current:
        logger.debug(f"Key {request.next!r} ignored for display {request.current!r}")
    return SanitizeResponse(display=display)


@app.post(
    "/evaluate",
    response_model=EvaluateResponse,
    summary="Evaluate an expression",
    description="Evaluate strictly left to right; failures are reported through `kind`",
)
async def evaluate_display(request: EvaluateRequest):
    """
    Evaluate an expression and return the tagged result.

    Args:
        request: EvaluateRequest holding the display string

    Returns:
        EvaluateResponse with kind NUMBER and the value, or DIV_ZERO / INVALID_EXPRESSION / OUT_OF_RANGE
        with the formatted text "Error"
    """
    logger.info(f"Processing evaluate request for expression: {request.expression!r}")
    result = evaluate(request.expression)
    if result.kind != ResultKind.NUMBER:
        logger.info(f"Expression {request.expression!r} failed with {result.kind}: {result.message}")
    return EvaluateResponse(
        kind=result.kind,
        value=result.value,
        formatted=format_result(result),
        message=result.message,
    )


@app.post(
    "/format",
    response_model=FormatResponse,
    summary="Format a number for the display",
)
async def format_value(request: FormatRequest):
    return FormatResponse(formatted=format_result(request.value))


@app.post(
    "/keypad",
    response_model=KeypadResponse,
    summary="Press a key",
    description="Apply one key press to the supplied state and return the next state",
)
async def press_key(request: KeypadRequest):
    """
    Apply one key press to the caller's state.

    Args:
        request: KeypadRequest holding the current state and the key

    Returns:
        KeypadResponse with the next state, the screen text and the status line
    """
    logger.info(f"Processing key {request.key!r} on display {request.state.display!r}")
    state = press(request.state.to_state(), request.key)
    if state.error:
        logger.info(f"Key {request.key!r} produced error: {state.error}")
    return KeypadResponse(
        state=StateModel.from_state(state),
        screen=screen_text(state),
        status=status_text(state),
    )


# ----- Main Entry Point -----

def run():
    """Run the API with uvicorn on CALC_API_HOST / CALC_API_PORT."""
    import uvicorn
    uvicorn.run(
        app,
        host=os.getenv("CALC_API_HOST", "127.0.0.1"),
        port=int(os.getenv("CALC_API_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
