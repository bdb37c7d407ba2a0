"""任务执行器

每个启用的任务对应一个 Executor，按调度类型驱动任务体执行，直到收到取消信号。

- cron: 由 CronEngine 计算下次触发时间，等待后执行，执行完再计算下一次
- fixed_rate: 启动后立即执行一次，之后按固定网格触发，不等待上一次执行结束（允许重叠）
- fixed_delay: 执行、等待完成、再等待间隔，严格串行

取消只在挂起点（等待下一次触发时）生效，不会中断正在执行的任务体；
fixed_rate 已发出的执行会在退出前等待完成。
"""

import asyncio
import inspect
import uuid
from collections import deque
from datetime import datetime, timedelta
from typing import Any

from taskbeat.core.config import settings
from taskbeat.core.errors import TaskAborted
from taskbeat.core.logging import get_logger
from taskbeat.scheduler.cron import CronEngine
from taskbeat.scheduler.schedule import (
    ResolvedCron,
    ResolvedFixedDelay,
    ResolvedFixedRate,
    ResolvedTask,
)
from taskbeat.scheduler.state.models import ExecutorState, TaskExecutionRecord, TaskState
from taskbeat.scheduler.tasks.base import TaskResult, TaskResultStatus

logger = get_logger("scheduler.executor")


def _after(seconds: float) -> datetime | None:
    """当前时间加上 seconds；超出 datetime 可表示范围时返回 None"""
    try:
        return datetime.now() + timedelta(seconds=seconds)
    except OverflowError:
        return None


class Executor:
    """单个任务的执行器

    Attributes:
        task: 已解析的任务
        name: 任务名称
    """

    def __init__(
        self,
        task: ResolvedTask,
        cancel_event: asyncio.Event,
        *,
        cron_engine: CronEngine | None = None,
        history_limit: int | None = None,
    ):
        if isinstance(task.schedule, ResolvedCron) and cron_engine is None:
            raise ValueError(f"cron 任务 '{task.name}' 需要 cron_engine")

        self.task = task
        self.name = task.name
        self._cancel = cancel_event
        self._cron_engine = cron_engine
        self._history: deque[TaskExecutionRecord] = deque(
            maxlen=history_limit or settings.EXECUTION_HISTORY_LIMIT
        )
        self._task_state = TaskState(task_name=task.name, schedule=task.schedule.describe())
        self._in_flight: set[asyncio.Task] = set()
        self._runner: asyncio.Task | None = None
        self._aborted = False

    @property
    def state(self) -> ExecutorState:
        return self._task_state.state

    @property
    def task_state(self) -> TaskState:
        return self._task_state

    @property
    def in_flight(self) -> int:
        return self._task_state.in_flight

    @property
    def done(self) -> bool:
        return self._runner is not None and self._runner.done()

    def spawn(self) -> asyncio.Task:
        """在当前事件循环中启动执行器"""
        if self._runner is not None:
            raise RuntimeError(f"执行器已启动: {self.name}")
        self._runner = asyncio.create_task(self._run(), name=f"taskbeat:{self.name}")
        return self._runner

    @property
    def runner(self) -> asyncio.Task | None:
        return self._runner

    def get_history(self, limit: int = 10) -> list[TaskExecutionRecord]:
        """获取执行历史

        Args:
            limit: 返回条数

        Returns:
            执行记录列表（按时间倒序）
        """
        return sorted(self._history, key=lambda r: r.started_at, reverse=True)[:limit]

    def to_dict(self) -> dict[str, Any]:
        descriptor = self.task.descriptor
        return {
            "name": self.name,
            "description": descriptor.description,
            "kind": descriptor.kind.value,
            "schedule_type": self.task.schedule.kind.value,
            "initial_delay_ms": self.task.initial_delay_ms,
            **self._task_state.to_dict(),
        }

    # ========== 状态机 ==========

    def _set_state(self, state: ExecutorState) -> None:
        previous = self._task_state.state
        if previous == state:
            return
        self._task_state.state = state
        logger.debug(
            "执行器状态变更",
            task_name=self.name,
            from_state=previous.value,
            to_state=state.value,
        )

    def _terminate(self, reason: str) -> None:
        self._set_state(ExecutorState.TERMINATED)
        logger.warning("执行器终止", task_name=self.name, reason=reason)

    async def _suspend(self, seconds: float) -> bool:
        """挂起等待，期间收到取消信号则立即返回

        Returns:
            True 表示等待结束，False 表示已取消
        """
        if self._cancel.is_set():
            return False
        if seconds <= 0:
            await asyncio.sleep(0)
            return not self._cancel.is_set()
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False

    async def _run(self) -> None:
        schedule = self.task.schedule
        logger.debug("执行器启动", task_name=self.name, schedule=schedule.describe())
        try:
            if self.task.initial_delay_ms > 0:
                self._set_state(ExecutorState.INITIAL_DELAY)
                self._task_state.next_run_at = _after(self.task.initial_delay_ms / 1000)
                if not await self._suspend(self.task.initial_delay_ms / 1000):
                    return
            if self._cancel.is_set():
                return

            self._set_state(ExecutorState.ARMED)
            if isinstance(schedule, ResolvedCron):
                await self._run_cron(schedule)
            elif isinstance(schedule, ResolvedFixedRate):
                await self._run_fixed_rate(schedule)
            else:
                await self._run_fixed_delay(schedule)
        except Exception as e:
            logger.exception("执行器异常退出", task_name=self.name)
            self._terminate(f"执行器异常: {e}")
            raise
        finally:
            if self._in_flight:
                logger.debug("等待执行中的任务完成", task_name=self.name, in_flight=len(self._in_flight))
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            self._task_state.next_run_at = None
            if self.state != ExecutorState.TERMINATED:
                self._set_state(ExecutorState.CANCELLED)
            logger.debug("执行器已退出", task_name=self.name, state=self.state.value)

    async def _run_cron(self, schedule: ResolvedCron) -> None:
        last_fire: datetime | None = None
        while True:
            now = datetime.now().astimezone()
            after = max(now, last_fire) if last_fire else now
            try:
                next_fire = self._cron_engine.next_fire(schedule.expr, schedule.zone, after)
            except Exception as e:
                logger.exception("计算下次执行时间失败", task_name=self.name, expr=schedule.expr)
                self._terminate(f"cron 引擎错误: {e}")
                return
            if next_fire is None:
                self._terminate("cron 表达式不再触发")
                return

            self._task_state.next_run_at = next_fire
            delay = (next_fire - datetime.now().astimezone()).total_seconds()
            if not await self._suspend(delay):
                return

            self._set_state(ExecutorState.FIRING)
            if not await self._invoke():
                self._terminate("任务中止")
                return
            last_fire = next_fire
            self._set_state(ExecutorState.ARMED)

    async def _run_fixed_rate(self, schedule: ResolvedFixedRate) -> None:
        loop = asyncio.get_running_loop()
        interval = schedule.interval_ms / 1000
        # 以启动时刻为基准的固定网格，不受任务体耗时和唤醒抖动影响
        next_tick = loop.time()
        while True:
            if self._aborted:
                self._terminate("任务中止")
                return

            self._set_state(ExecutorState.FIRING)
            fire = asyncio.create_task(self._invoke(), name=f"taskbeat:{self.name}:fire")
            self._in_flight.add(fire)
            fire.add_done_callback(self._in_flight.discard)
            self._set_state(ExecutorState.ARMED)

            next_tick += interval
            delay = next_tick - loop.time()
            self._task_state.next_run_at = _after(max(delay, 0))
            if not await self._suspend(delay):
                return

    async def _run_fixed_delay(self, schedule: ResolvedFixedDelay) -> None:
        interval = schedule.interval_ms / 1000
        while True:
            self._set_state(ExecutorState.FIRING)
            if not await self._invoke():
                self._terminate("任务中止")
                return
            self._set_state(ExecutorState.ARMED)

            self._task_state.next_run_at = _after(interval)
            if not await self._suspend(interval):
                return

    # ========== 任务体执行 ==========

    async def _call_body(self) -> Any:
        body = self.task.descriptor.body
        if inspect.iscoroutinefunction(body):
            result = await body()
        else:
            result = await asyncio.to_thread(body)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _invoke(self) -> bool:
        """执行一次任务体

        任务体异常会被捕获并记录，不影响后续调度。

        Returns:
            False 表示任务体抛出 TaskAborted，执行器应终止
        """
        record = TaskExecutionRecord(
            id=str(uuid.uuid4()),
            task_name=self.name,
            started_at=datetime.now(),
        )
        self._task_state.in_flight += 1
        self._task_state.last_run_at = record.started_at
        logger.info("开始执行任务", task_name=self.name, record_id=record.id)

        try:
            result = await self._call_body()
        except TaskAborted as e:
            record.finish(TaskResultStatus.FAILED.value, message="任务中止", error=e.error_message)
            self._aborted = True
            logger.error("任务中止，停止调度", task_name=self.name, error=e.error_message)
            return False
        except Exception as e:
            record.finish(TaskResultStatus.FAILED.value, message="执行异常", error=str(e) or type(e).__name__)
            logger.exception("任务执行异常", task_name=self.name, error=str(e))
            return True
        else:
            if isinstance(result, TaskResult):
                record.finish(result.status.value, message=result.message, error=result.error, data=result.data)
            else:
                record.finish(TaskResultStatus.SUCCESS.value, message="执行成功")
            log = logger.warning if record.status == TaskResultStatus.FAILED.value else logger.info
            log(
                "任务执行完成",
                task_name=self.name,
                status=record.status,
                duration_ms=record.duration_ms,
            )
            return True
        finally:
            self._complete(record)

    def _complete(self, record: TaskExecutionRecord) -> None:
        state = self._task_state
        state.in_flight -= 1
        if record.finished_at is None:
            record.finish(TaskResultStatus.FAILED.value, message="执行被取消", error="cancelled")
        state.run_count += 1
        state.last_result = record.status
        state.last_error = record.error
        if record.status == TaskResultStatus.FAILED.value:
            state.fail_count += 1
        self._history.append(record)
