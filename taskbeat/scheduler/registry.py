"""任务注册中心与调度器构建器

- TaskRegistry: 声明期收集任务描述符（保持声明顺序），模块级 task_registry 供自动发现
- SchedulerBuilder: 组合注册中心、手动注册的任务、配置源和 cron 引擎，build() 生成 Scheduler
"""

from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any

from taskbeat.core.errors import TaskbeatError
from taskbeat.core.logging import get_logger
from taskbeat.scheduler.config_source import ConfigSource
from taskbeat.scheduler.cron import CronEngine, CroniterEngine
from taskbeat.scheduler.scheduler import Scheduler
from taskbeat.scheduler.tasks.base import BaseTask, TaskDescriptor

logger = get_logger("scheduler.registry")


class TaskRegistry:
    """任务注册中心

    只追加、保持声明顺序，允许重名（重名在 build() 时记录警告）。

    Example:
        registry = TaskRegistry()

        @registry.scheduled(fixed_rate="${jobs.heartbeat.interval:5s}")
        async def heartbeat():
            ...

        for descriptor in registry:
            print(descriptor.name)
    """

    def __init__(self):
        self._tasks: list[TaskDescriptor] = []

    def register(self, descriptor: TaskDescriptor) -> TaskDescriptor:
        """注册任务描述符

        Args:
            descriptor: 任务描述符

        Returns:
            传入的描述符
        """
        if not isinstance(descriptor, TaskDescriptor):
            raise TypeError(f"只能注册 TaskDescriptor，收到 {type(descriptor).__name__}")

        self._tasks.append(descriptor)
        logger.info(
            "注册任务",
            task_name=descriptor.name,
            kind=descriptor.kind.value,
            schedule_type=descriptor.raw_schedule.kind.value,
        )
        return descriptor

    def scheduled(
        self,
        *,
        name: str | None = None,
        description: str | None = None,
        **schedule_fields: Any,
    ) -> Callable[[Callable], Callable]:
        """函数任务装饰器

        声明在装饰时校验（声明错误直接抛出 ScheduleSpecError），函数本身原样返回。

        Example:
            @task_registry.scheduled(cron="0 */5 * * * *")
            async def sync_inventory():
                ...
        """

        def decorator(func: Callable) -> Callable:
            self.register(
                TaskDescriptor.from_function(
                    func,
                    name=name,
                    description=description,
                    **schedule_fields,
                )
            )
            return func

        return decorator

    def get(self, task_name: str) -> TaskDescriptor | None:
        """获取任务（重名时返回最先注册的）

        Args:
            task_name: 任务名称

        Returns:
            任务描述符，不存在则返回 None
        """
        for descriptor in self._tasks:
            if descriptor.name == task_name:
                return descriptor
        return None

    def list_all(self) -> list[TaskDescriptor]:
        """按声明顺序列出所有任务"""
        return list(self._tasks)

    def clear(self) -> None:
        """清空注册中心"""
        self._tasks.clear()

    def __iter__(self) -> Iterator[TaskDescriptor]:
        return iter(list(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_name: str) -> bool:
        return self.get(task_name) is not None


# 全局任务注册中心实例
task_registry = TaskRegistry()
scheduled = task_registry.scheduled


class SchedulerBuilder:
    """调度器构建器

    所有方法可链式调用且不会失败；配置错误在 start() 时统一报告。

    Example:
        handle = await (
            SchedulerBuilder()
            .with_file("config/app.toml")
            .register(CleanupTask())
            .register(TaskDescriptor.create("ping", ping, fixed_delay="30s"))
            .start()
        )
        ...
        await handle.shutdown()
    """

    def __init__(self, registry: TaskRegistry | None = None):
        self.registry = task_registry if registry is None else registry
        self._manual: list[TaskDescriptor] = []
        self._config: ConfigSource | None = None
        self._cron_engine: CronEngine | None = None

    def with_config(self, source: ConfigSource | Mapping[str, Any]) -> "SchedulerBuilder":
        """设置配置源（ConfigSource 或嵌套 dict）"""
        if not isinstance(source, ConfigSource):
            source = ConfigSource.from_mapping(source)
        self._config = source
        return self

    def with_file(self, path: str | Path, format: str | None = None) -> "SchedulerBuilder":
        """从配置文件加载配置源

        Raises:
            ConfigFileError: 文件无法加载
        """
        self._config = ConfigSource.from_file(path, format=format)
        return self

    def with_cron_engine(self, engine: CronEngine) -> "SchedulerBuilder":
        self._cron_engine = engine
        return self

    def register(self, item: TaskDescriptor | BaseTask | Any) -> "SchedulerBuilder":
        """手动注册任务

        接受 TaskDescriptor、BaseTask 实例，或带有 scheduled_method 方法的对象。
        无法识别或无法转换为描述符的对象记录警告后忽略，不会抛出异常。
        """
        if isinstance(item, TaskDescriptor):
            descriptors = [item]
        elif isinstance(item, BaseTask):
            try:
                descriptors = [item.to_descriptor()]
            except (TaskbeatError, AttributeError, TypeError, ValueError) as e:
                logger.warning("任务声明不完整，已忽略", item=repr(item), error=str(e))
                return self
        else:
            descriptors = TaskDescriptor.from_object(item)
            if not descriptors:
                logger.warning("对象没有可调度的任务，已忽略", item=repr(item))
                return self

        for descriptor in descriptors:
            self._manual.append(descriptor)
            logger.info(
                "手动注册任务",
                task_name=descriptor.name,
                kind=descriptor.kind.value,
                schedule_type=descriptor.raw_schedule.kind.value,
            )
        return self

    def build(self) -> Scheduler:
        """构建调度器

        顺序：注册中心中的任务（声明顺序）在前，手动注册的任务（调用顺序）在后。
        不做任何解析和 I/O。
        """
        tasks = (*self.registry.list_all(), *self._manual)

        seen: set[str] = set()
        for descriptor in tasks:
            if descriptor.name in seen:
                logger.warning("任务名称重复", task_name=descriptor.name)
            seen.add(descriptor.name)

        return Scheduler(
            tasks=tasks,
            config=self._config if self._config is not None else ConfigSource(),
            cron_engine=self._cron_engine if self._cron_engine is not None else CroniterEngine(),
        )

    async def start(self):
        """build().start() 的简写

        Returns:
            SchedulerHandle

        Raises:
            StartError: 任务配置无效或 cron 引擎初始化失败
        """
        return await self.build().start()
