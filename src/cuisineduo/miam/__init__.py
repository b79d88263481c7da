"""
CuisineDuo - Miam Orchestrator.

Miam turns a spoken or typed request into in-app actions: the model picks
tools, the client executes them.
"""

from cuisineduo.miam.orchestrator import MiamContext, MiamTurn, run_orchestrator
from cuisineduo.miam.tools import ALWAYS_AVAILABLE, TOOL_DECLARATIONS, available_tools

__all__ = [
    "ALWAYS_AVAILABLE",
    "MiamContext",
    "MiamTurn",
    "TOOL_DECLARATIONS",
    "available_tools",
    "run_orchestrator",
]
