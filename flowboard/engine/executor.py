"""
Step-by-step Workflow Executor.

The engine interprets the graph held by a ``WorkflowStore`` one node at a
time. It owns no graph state: it reads the board from the store, decides
the next transition and dispatches it back. Between steps it holds a
single cancellable ``asyncio`` timer handle, so pausing between two steps
reliably prevents the next one from running.
"""

from typing import Any, Callable, Dict, List, Optional
from enum import Enum
import asyncio
import logging

from flowboard.engine.graph import (
    Connection,
    DecisionData,
    Node,
    NodeType,
    Port,
    StartData,
    TaskAction,
    TaskData,
    as_text,
    find_node,
    find_start_node,
    node_config,
    outgoing_connections,
)
from flowboard.engine.logs import ExecutionLog
from flowboard.engine.store import ActionKind, FlowStatus, WorkflowStore


logger = logging.getLogger(__name__)


DEFAULT_STEP_DELAY = 1.0  # Seconds


class RunOutcome(str, Enum):
    """Result of a ``start()`` request."""
    STARTED = "started"
    RESUMED = "resumed"
    ALREADY_RUNNING = "already_running"
    NO_START_NODE = "no_start_node"


class StepOutcome(str, Enum):
    """Result of a single ``step()``."""
    SKIPPED = "skipped"                  # Not running
    ADVANCED = "advanced"                # Moved to the next node
    COMPLETED = "completed"              # Run finished normally
    DANGLING_BRANCH = "dangling_branch"  # Decision had no matching edge


def resolve_decision(config: DecisionData, variables: Dict[str, Any]) -> Port:
    """
    Pick the decision port for the current variables.

    The variable's string form is compared to the configured value with
    exact string equality. An unset variable has no string form, so it
    takes the false branch for every configured value, including
    ``"undefined"`` and ``""``.
    """
    if config.variable in variables and as_text(variables[config.variable]) == config.value:
        return Port.OUTPUT_TRUE
    return Port.OUTPUT_FALSE


class WorkflowEngine:
    """
    Cooperative, time-sliced workflow interpreter.

    Handles:
    - start / pause / resume / reset of a run
    - One node per step, with a fixed delay between steps
    - Decision branching on string equality
    - A per-run variable environment mutated by ``set_var`` tasks

    Usage:
        engine = WorkflowEngine(store, log=ExecutionLog(), step_delay=1.0)
        engine.start()   # must be called from within a running event loop
        ...
        engine.pause()
    """

    def __init__(
        self,
        store: WorkflowStore,
        log: Optional[ExecutionLog] = None,
        notifier: Optional[Callable[[str], None]] = None,
        step_delay: float = DEFAULT_STEP_DELAY,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: The store holding the board
            log: Execution log sink (a private one is created if omitted)
            notifier: Called with the message of user-facing alerts
                (defaults to ``log.alert``)
            step_delay: Seconds between two steps
            loop: Event loop used for scheduling (defaults to the running loop)
        """
        self.store = store
        self.log = log if log is not None else ExecutionLog()
        self.notifier = notifier or self.log.alert
        self.step_delay = step_delay
        self._loop = loop
        self._run_loop: Optional[asyncio.AbstractEventLoop] = None

        self._handle: Optional[asyncio.TimerHandle] = None
        self._variables: Dict[str, Any] = {}
        self._steps_taken = 0

    @property
    def variables(self) -> Dict[str, Any]:
        """Get a copy of the current variable environment."""
        return dict(self._variables)

    @property
    def steps_taken(self) -> int:
        """Number of node-to-node advances in the current run."""
        return self._steps_taken

    @property
    def has_pending_step(self) -> bool:
        return self._handle is not None

    @property
    def status(self) -> FlowStatus:
        return self.store.get_state().flow_status

    # ----------------------------------------------------------
    # Run control
    # ----------------------------------------------------------

    def start(self) -> RunOutcome:
        """
        Start a fresh run, or resume a paused one.

        Returns:
            What the request did

        Raises:
            RuntimeError: If no loop was given and none is running. The
                board is left untouched.
        """
        status = self.status
        if status == FlowStatus.RUNNING:
            return RunOutcome.ALREADY_RUNNING

        # Resolve the loop before any state changes
        self._run_loop = self._loop or asyncio.get_running_loop()

        outcome = RunOutcome.RESUMED

        if status in (FlowStatus.IDLE, FlowStatus.COMPLETED):
            self.store.dispatch(ActionKind.RESET_EXECUTION)
            self._variables = {}
            self._steps_taken = 0
            self._emit("System", "Execution started.")

            start_node = find_start_node(self.store.get_state().nodes)
            if start_node is None:
                self._alert("No Start node found!")
                return RunOutcome.NO_START_NODE

            self.store.dispatch(ActionKind.SET_ACTIVE_NODE, start_node.id)
            outcome = RunOutcome.STARTED

        self.store.dispatch(ActionKind.SET_FLOW_STATUS, FlowStatus.RUNNING)
        self._schedule()
        return outcome

    def pause(self) -> None:
        """Pause the run and cancel the pending step."""
        self.store.dispatch(ActionKind.SET_FLOW_STATUS, FlowStatus.PAUSED)
        self.cancel_pending()
        self._emit("System", "Paused.")

    def reset(self) -> None:
        """
        Stop the run and clear all execution state and the execution log.

        The graph is untouched.
        """
        self.pause()
        self.store.dispatch(ActionKind.RESET_EXECUTION)
        self._variables = {}
        self._steps_taken = 0
        try:
            self.log.clear()
        except Exception as e:
            logger.warning(f"Log sink failed: {e}")

    def cancel_pending(self) -> None:
        """Cancel the scheduled step, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    # ----------------------------------------------------------
    # Scheduling
    # ----------------------------------------------------------

    def _schedule(self) -> None:
        self.cancel_pending()
        if self.status != FlowStatus.RUNNING:
            return
        loop = self._run_loop or self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.step_delay, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        self.step()

    # ----------------------------------------------------------
    # Transition function
    # ----------------------------------------------------------

    def step(self) -> StepOutcome:
        """
        Execute the active node and move to its successor.

        Returns:
            What the step did
        """
        if self.status != FlowStatus.RUNNING:
            return StepOutcome.SKIPPED

        # A manual step replaces the scheduled one
        self.cancel_pending()

        state = self.store.get_state()
        node = find_node(state.nodes, state.active_node_id)
        if node is None:
            self._finish()
            return StepOutcome.COMPLETED

        self._execute_node_logic(node)
        self.store.dispatch(ActionKind.MARK_NODE_COMPLETED, node.id)

        if node.type == NodeType.END:
            self._finish()
            return StepOutcome.COMPLETED

        connections = outgoing_connections(self.store.get_state().connections, node.id)
        if not connections:
            self._finish()
            return StepOutcome.COMPLETED

        if node.type == NodeType.DECISION:
            next_node_id = self._choose_branch(node, connections)
        else:
            # Only the first edge of a non-decision node is followed
            next_node_id = connections[0].target

        if next_node_id is None:
            self._finish()
            return StepOutcome.DANGLING_BRANCH

        self.store.dispatch(ActionKind.SET_ACTIVE_NODE, next_node_id)
        self._steps_taken += 1
        self._schedule()
        return StepOutcome.ADVANCED

    def _choose_branch(self, node: Node, connections: List[Connection]) -> Optional[str]:
        config = node_config(node)
        port = resolve_decision(config, self._variables)

        if config.variable in self._variables:
            shown = as_text(self._variables[config.variable])
        else:
            shown = "undefined"
        is_match = port == Port.OUTPUT_TRUE
        self._emit(
            "Decision",
            f"Checking {config.variable} ({shown}) == {config.value} -> "
            f"{'true' if is_match else 'false'}"
        )

        for connection in connections:
            if connection.source_port == port:
                return connection.target

        logger.info(f"Decision '{node.id}' has no '{port.value}' connection")
        return None

    def _execute_node_logic(self, node: Node) -> None:
        config = node_config(node)

        if isinstance(config, TaskData):
            if config.action == TaskAction.LOG.value:
                self._emit("Task", config.message or "Executing Task...")
            elif config.action == TaskAction.ALERT.value:
                message = config.message or "Alert!"
                self._alert(message)
                self._emit("Task", f"Alerted: {message}")
            elif config.action == TaskAction.SET_VAR.value:
                if config.var_name:
                    self._variables[config.var_name] = config.var_value
                    self._emit(
                        "Internal",
                        f"Set {config.var_name} = {as_text(config.var_value)}"
                    )
            else:
                logger.debug(f"Task '{node.id}' has unknown action '{config.action}'")

        elif isinstance(config, StartData):
            self._emit("Start", "Workflow initiated.")

    def _finish(self) -> None:
        self.cancel_pending()
        self.store.dispatch(ActionKind.SET_FLOW_STATUS, FlowStatus.COMPLETED)
        self.store.dispatch(ActionKind.SET_ACTIVE_NODE, None)
        self._emit("System", "Workflow Completed.")

    # ----------------------------------------------------------
    # Side channels
    # ----------------------------------------------------------

    def _emit(self, source: str, message: str) -> None:
        try:
            self.log.log(source, message)
        except Exception as e:
            logger.warning(f"Log sink failed: {e}")

    def _alert(self, message: str) -> None:
        try:
            self.notifier(message)
        except Exception as e:
            logger.warning(f"Notifier failed: {e}")
