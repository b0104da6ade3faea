"""LangChain calculator tool."""

import math
from typing import Literal

from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

Operation = Literal["add", "subtract", "multiply", "divide", "percentage", "sqrt", "power"]


class CalculateInput(BaseModel):
    operation: Operation = Field(
        ...,
        description=(
            "One of: add, subtract, multiply, divide, percentage (a percent of b), "
            "sqrt (square root of a), power (a raised to b)."
        ),
    )
    a: float = Field(..., description="First operand")
    b: float | None = Field(default=None, description="Second operand. Not used by sqrt.")


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else f"{value:.6g}"


def calculate(operation: Operation, a: float, b: float | None = None) -> float:
    """Apply ``operation`` to the operands. Raises ToolException on invalid input."""
    if operation == "sqrt":
        if a < 0:
            raise ToolException("Cannot take the square root of a negative number.")
        return math.sqrt(a)

    if b is None:
        raise ToolException(f"Operation '{operation}' needs two numbers.")

    match operation:
        case "add":
            return a + b
        case "subtract":
            return a - b
        case "multiply":
            return a * b
        case "divide":
            if b == 0:
                raise ToolException("Cannot divide by zero.")
            return a / b
        case "percentage":
            return a / 100 * b
        case "power":
            try:
                return math.pow(a, b)
            except (OverflowError, ValueError) as e:
                raise ToolException(f"Cannot raise {a} to {b}: {e}") from e
        case _:
            raise ToolException(f"Unknown operation '{operation}'.")


@tool("math_calculate", args_schema=CalculateInput)
def math_calculate(operation: Operation, a: float, b: float | None = None) -> str:
    """Perform a basic arithmetic calculation."""
    return f"Result: {_format_number(calculate(operation, a, b))}"


math_calculate.handle_tool_error = True
