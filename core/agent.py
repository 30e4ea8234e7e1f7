"""
Central orchestrator for the print intake daemon.
Owns the event bus and the lifecycle of the registered modules.
"""

import logging

from core.events import EventBus, Event, ERROR_OCCURRED
from core.audit import log_action

logger = logging.getLogger(__name__)


class PrintAgent:
    """
    Ties the intake modules together.
    Modules register with the agent and subscribe to events.
    """

    def __init__(self, event_bus: EventBus = None):
        self.event_bus = event_bus or EventBus()
        self._modules = {}
        self._running = False

        # Log all errors
        self.event_bus.subscribe(ERROR_OCCURRED, self._handle_error)

    @property
    def running(self) -> bool:
        return self._running

    def register_module(self, name: str, module):
        """Register a module with the agent. Modules may have a setup(event_bus) method."""
        self._modules[name] = module
        if hasattr(module, "setup"):
            module.setup(self.event_bus)
        logger.info(f"Module '{name}' registered")

    def get_module(self, name: str):
        return self._modules.get(name)

    def start(self):
        """
        Start all modules that have a start() method. A module that cannot
        start is fatal: already-started modules are stopped and the error
        propagates.
        """
        started = []
        logger.info(f"Print agent starting with modules: {list(self._modules.keys())}")
        for name, module in self._modules.items():
            if hasattr(module, "start"):
                try:
                    module.start()
                except Exception:
                    logger.error(f"Failed to start module '{name}'")
                    for other in reversed(started):
                        other.stop()
                    raise
                started.append(module)
                logger.info(f"Module '{name}' started")

        self._running = True
        log_action("agent", "agent_started", detail={"modules": list(self._modules.keys())})

    def stop(self):
        """Stop all modules that have a stop() method."""
        self._running = False
        for name, module in self._modules.items():
            if hasattr(module, "stop"):
                try:
                    module.stop()
                    logger.info(f"Module '{name}' stopped")
                except Exception as e:
                    logger.error(f"Failed to stop module '{name}': {e}")

        log_action("agent", "agent_stopped")
        logger.info("Print agent stopped")

    def check_health(self):
        """Let notification sources recover. Raises WatchError when one cannot."""
        for module in self._modules.values():
            if hasattr(module, "ensure_running"):
                module.ensure_running()

    def _handle_error(self, event: Event):
        """Log errors from any module."""
        log_action(
            module="agent",
            action="module_error",
            detail=event.data,
            severity="error",
        )
