"""
Command registry for motion display.

Handlers are plain functions taking the app as their first argument and
keyword parameters after it. A command is a dict {"action": name, ...}; the
registry binds its parameters against the handler signature before calling,
so a malformed command never reaches the handler.
"""

import difflib
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from motion_display.exceptions import MotionDisplayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """A registered handler plus what callers need to know about it."""
    name: str
    handler: Callable[..., Optional[Dict[str, Any]]]
    signature: inspect.Signature
    summary: str

    @classmethod
    def from_handler(cls, name: str, handler: Callable) -> "Command":
        doc = inspect.getdoc(handler) or ""
        return cls(name=name, handler=handler,
                   signature=inspect.signature(handler),
                   summary=doc.splitlines()[0] if doc else "")

    def parameters(self) -> List[Dict[str, Any]]:
        """Parameters after the app argument, with defaults where present."""
        params = []
        for param in list(self.signature.parameters.values())[1:]:
            if param.kind == param.VAR_KEYWORD:
                params.append({"name": f"**{param.name}"})
                continue
            entry = {"name": param.name, "required": param.default is param.empty}
            if param.default is not param.empty:
                entry["default"] = param.default
            params.append(entry)
        return params

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "summary": self.summary,
                "parameters": self.parameters()}


class CommandRegistry:
    """
    Maps action names to Commands and executes them.

    execute() always returns a response dict with a 'status' key; handler
    errors that describe a bad request (wrong parameters, unknown ids,
    invalid values) come back as {"status": "error", "message": ...}.
    """

    def __init__(self):
        self._commands: Dict[str, Command] = {}

    def register(self, name: str, handler: Callable) -> Command:
        if name in self._commands:
            logger.warning(f"Command '{name}' is being re-registered")
        command = Command.from_handler(name, handler)
        self._commands[name] = command
        logger.debug(f"Registered command: {name}")
        return command

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def list_commands(self) -> List[str]:
        return sorted(self._commands)

    def describe(self) -> List[Dict[str, Any]]:
        return [self._commands[name].describe() for name in self.list_commands()]

    def _unknown(self, action: str) -> Dict[str, Any]:
        message = f"Unknown command: {action}"
        close = difflib.get_close_matches(action, self._commands, n=3)
        if close:
            message += f" (did you mean: {', '.join(close)}?)"
        return {"status": "error", "message": message,
                "available_commands": self.list_commands()}

    def execute(self, action: str, app: Any, **params) -> Dict[str, Any]:
        """Run one command against the app and return its response."""
        command = self._commands.get(action)
        if command is None:
            return self._unknown(action)

        try:
            command.signature.bind(app, **params)
        except TypeError as e:
            return {"status": "error",
                    "message": f"Invalid parameters for '{action}': {e}"}

        try:
            result = command.handler(app, **params)
        except (MotionDisplayError, TypeError, ValueError) as e:
            logger.debug(f"Command '{action}' rejected: {e}")
            return {"status": "error", "message": str(e)}

        if result is None:
            return {"status": "success"}
        result.setdefault("status", "success")
        return result


_registry = CommandRegistry()


def get_registry() -> CommandRegistry:
    """The process-wide registry that @register_command fills."""
    return _registry


def register_command(func: Callable = None, *, name: str = None) -> Callable:
    """
    Register a handler with the global registry.

    Usage:
        @register_command
        def add_text(app, text: str, x: float = 0, y: float = 0):
            '''Add a text element.'''
            ...

        @register_command(name="ping")
        def _ping(app):
            ...

    The command name defaults to the function name; the function itself is
    returned unchanged.
    """
    def decorator(fn: Callable) -> Callable:
        _registry.register(name if name is not None else fn.__name__, fn)
        return fn

    if func is not None:
        return decorator(func)
    return decorator
