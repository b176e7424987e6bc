from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from matbench.data import BenchmarkCase, PersistedCaseRecord
from matbench.logging import (
    SESSION_LOGGER_NAME,
    close_session_log,
    configure_logging,
    open_session_log,
)
from matbench.utils import env_snapshot

from .case_state import CaseState
from .config import BenchmarkConfig
from .dispatcher import BlockDispatcher
from .runner import IsolatedRunner, Runner
from .store import ResumableStore


class Benchmark:
    """Sweeps every case across its sizes, one block at a time.

    Blocks run strictly one after another. With ``config.randomize_order`` the next case
    is drawn at random among the pending ones, which spreads slow drifts of the machine
    (thermal throttling, memory fragmentation) evenly over all cases. Results are saved
    after every block, so a new run with the same output directory skips finished cases
    and continues unfinished ones.
    """

    def __init__(
        self,
        cases: Sequence[BenchmarkCase],
        output_dir: Union[str, Path],
        config: BenchmarkConfig = BenchmarkConfig(),
        runner: Optional[Runner] = None,
    ) -> None:
        self._cases = list(cases)
        self._output_dir = Path(output_dir)
        self._config = config

        # Setup logger
        self._logger = configure_logging(config.log_level)
        self._session = logging.getLogger(SESSION_LOGGER_NAME)

        # Setup runner
        self._runner = runner or IsolatedRunner(
            self._output_dir / "work", enforce_memory_limit=config.enforce_memory_limit
        )
        self._dispatcher = BlockDispatcher(self._runner, config, session_log=self._session)
        self._store = ResumableStore(self._output_dir, config.max_trial_time)

        # used to randomize the order of the blocks
        self._rand = random.Random(config.seed)

    @property
    def store(self) -> ResumableStore:
        return self._store

    @property
    def dispatcher(self) -> BlockDispatcher:
        return self._dispatcher

    def _create_case_list(self) -> List[CaseState]:
        """Load previously saved results, skipping finished cases."""
        states: List[CaseState] = []
        for case in self._cases:
            state = self._store.load(case)
            if state is None:
                states.append(CaseState(case=case))
            elif state.finished:
                self._session.info("SKIPPING: Found previously completed results for %s", case.name)
            else:
                self._session.info(
                    "RESUMING OLD RESULTS: Found previously incomplete results for %s at size %d",
                    case.name,
                    state.current_size,
                )
                states.append(state)
        return states

    def run_all(self) -> Dict[str, PersistedCaseRecord]:
        """Run blocks until every case is finished.

        Returns
        -------
        Dict[str, PersistedCaseRecord]
            Final record of every case that ran in this invocation, keyed by case name.
        """
        handler = open_session_log(self._output_dir, env_snapshot())
        records: Dict[str, PersistedCaseRecord] = {}
        start = time.monotonic()
        try:
            states = self._create_case_list()
            while states:
                index = self._rand.randrange(len(states)) if self._config.randomize_order else 0
                state = states[index]
                done = self._evaluate_one_block(state)
                records[state.case.name] = state.to_record()
                if done:
                    states.pop(index)
        finally:
            self._session.info("Total processing time = %.1f s", time.monotonic() - start)
            close_session_log(handler)
            self._runner.close()
        return records

    def _evaluate_one_block(self, state: CaseState) -> bool:
        """Run one block of ``state``'s case, fold the outcome in and persist the state."""
        case = state.case
        self._logger.info(
            f"#### {case.library} op {case.operation.value} Size {state.current_size} "
            f"numTrials {state.trials_collected} ####"
        )
        outcome = self._dispatcher.run_block(case, state.size_index, state.trials_collected)
        done = state.fold(outcome, self._config.skip_larger_when_first_trial_too_slow)
        if outcome.is_fatal():
            self._logger.warning(
                f"Evaluation case {case.name} failed: {outcome.failed.value}"
                + (" (given up)" if state.complete else " (can be resumed later)")
            )
        self._store.save(case, state)
        return done
