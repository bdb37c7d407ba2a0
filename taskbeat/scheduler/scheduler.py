"""调度器核心

Scheduler 由 SchedulerBuilder.build() 生成，不可变；start() 解析所有任务配置并为每个启用的任务启动执行器，
返回 SchedulerHandle 管理运行中的执行器。

启动是全有或全无的：任一任务配置无效则 start() 失败，不启动任何执行器。

Example:
    scheduler = SchedulerBuilder().with_file("config/app.toml").build()
    handle = await scheduler.start()
    # ... 运行中 ...
    await handle.shutdown()
"""

import asyncio
from dataclasses import dataclass

from taskbeat.core.config import settings
from taskbeat.core.errors import (
    CronEngineInitError,
    ShutdownTimeout,
    TaskConfigInvalid,
)
from taskbeat.core.logging import get_logger
from taskbeat.scheduler.config_source import ConfigSource
from taskbeat.scheduler.cron import CronEngine
from taskbeat.scheduler.executor import Executor
from taskbeat.scheduler.resolver import resolve_task
from taskbeat.scheduler.schedule import ResolvedTask
from taskbeat.scheduler.tasks.base import TaskDescriptor

logger = get_logger("scheduler.core")


@dataclass(frozen=True)
class Scheduler:
    """已构建的调度器

    Attributes:
        tasks: 按注册顺序排列的任务描述符
        config: 配置源
        cron_engine: cron 引擎
    """

    tasks: tuple[TaskDescriptor, ...]
    config: ConfigSource
    cron_engine: CronEngine

    async def start(self) -> "SchedulerHandle":
        """启动调度器

        Returns:
            SchedulerHandle

        Raises:
            CronEngineInitError: cron 引擎启动失败
            TaskConfigInvalid: 任务配置无效（第一个失败的任务）
        """
        try:
            await self.cron_engine.startup()
        except Exception as e:
            logger.error("cron 引擎初始化失败", error=str(e))
            raise CronEngineInitError(str(e)) from e

        resolved: list[ResolvedTask] = []
        skipped: list[str] = []
        for descriptor in self.tasks:
            try:
                task = resolve_task(descriptor, self.config, self.cron_engine)
            except Exception as e:
                # 自定义 cron 引擎可能抛出非 TaskbeatError 异常，同样按配置无效处理
                error = TaskConfigInvalid(descriptor.name, e)
                logger.error(
                    "任务配置无效，调度器启动失败",
                    task_name=descriptor.name,
                    code=error.data["cause"],
                    error=str(e),
                )
                await self._stop_engine()
                raise error from e

            if task is None:
                skipped.append(descriptor.name)
                continue
            resolved.append(task)

        cancel_event = asyncio.Event()
        executors = [Executor(task, cancel_event, cron_engine=self.cron_engine) for task in resolved]
        for executor in executors:
            executor.spawn()
            logger.info(
                "添加任务调度",
                task_name=executor.name,
                schedule=executor.task.schedule.describe(),
                initial_delay_ms=executor.task.initial_delay_ms,
            )

        logger.info("任务调度器已启动", task_count=len(executors), skipped=skipped)
        return SchedulerHandle(executors, cancel_event, self.cron_engine)

    async def _stop_engine(self) -> None:
        try:
            await self.cron_engine.shutdown()
        except Exception as e:
            logger.error("cron 引擎关闭失败", error=str(e))


class SchedulerHandle:
    """运行中的调度器

    持有所有执行器和共享的取消信号。shutdown() 发出取消信号并等待所有执行器退出，
    不会中断正在执行的任务体。可作为异步上下文管理器使用：

        async with await scheduler.start() as handle:
            ...
    """

    def __init__(self, executors: list[Executor], cancel_event: asyncio.Event, cron_engine: CronEngine):
        self._executors = executors
        self._cancel = cancel_event
        self._cron_engine = cron_engine
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def is_running(self) -> bool:
        """调度器是否正在运行

        未关闭且至少有一个执行器尚未退出；所有执行器都已终止（如 cron 不再触发）时为 False。
        """
        if self._closed:
            return False
        return any(not executor.done for executor in self._executors)

    @property
    def executors(self) -> list[Executor]:
        return list(self._executors)

    def get_executor(self, task_name: str) -> Executor | None:
        """获取执行器（重名时返回最先启动的）"""
        for executor in self._executors:
            if executor.name == task_name:
                return executor
        return None

    def __contains__(self, task_name: str) -> bool:
        return self.get_executor(task_name) is not None

    def __len__(self) -> int:
        return len(self._executors)

    async def shutdown(self, timeout: float | None = None) -> None:
        """停止调度器

        重复调用是安全的：已完成关闭后再次调用直接返回。

        Args:
            timeout: 等待执行器退出的秒数，默认取 SHUTDOWN_TIMEOUT_SECONDS

        Raises:
            ShutdownTimeout: 超时后仍有执行器未退出（可再次调用 shutdown 继续等待）
        """
        async with self._lock:
            if self._closed:
                return

            if timeout is None:
                timeout = settings.SHUTDOWN_TIMEOUT_SECONDS

            if not self._cancel.is_set():
                logger.info("正在停止任务调度器", task_count=len(self._executors))
                self._cancel.set()

            runners = [e.runner for e in self._executors if e.runner is not None]
            if runners:
                _, pending = await asyncio.wait(runners, timeout=timeout)
                if pending:
                    names = [e.name for e in self._executors if e.runner in pending]
                    logger.error("停止任务调度器超时", timeout=timeout, pending=names)
                    raise ShutdownTimeout(timeout, names)

            for executor in self._executors:
                runner = executor.runner
                if runner is not None and not runner.cancelled() and runner.exception() is not None:
                    logger.error(
                        "执行器异常退出",
                        task_name=executor.name,
                        error=str(runner.exception()),
                    )

            self._closed = True
            try:
                await self._cron_engine.shutdown()
            except Exception as e:
                logger.error("cron 引擎关闭失败", error=str(e))
            logger.info("任务调度器已停止")

    def get_status(self) -> dict:
        """获取调度器状态

        Returns:
            包含运行状态、任务数、各任务状态的字典
        """
        return {
            "running": self.is_running,
            "task_count": len(self._executors),
            "tasks": [executor.to_dict() for executor in self._executors],
        }

    async def __aenter__(self) -> "SchedulerHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
