"""
带指数退避的重试执行器
"""
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger


@dataclass
class RetryResult:
    """重试结果，成功时为真值"""
    success: bool
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0

    def __bool__(self) -> bool:
        return self.success


class RetryExecutor:
    """重试执行器

    失败后等待 delay 再试，每次翻倍；重试用尽时记录日志并返回失败结果，
    不向上抛出异常。调用方不能因为调用返回就认为操作成功。
    """

    def __init__(self, max_retries: int = 3, initial_delay: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    def run(self, operation: Callable[[], Any], label: str = "operation",
            max_retries: Optional[int] = None,
            initial_delay: Optional[float] = None) -> RetryResult:
        """执行操作，失败时重试"""
        retries = self.max_retries if max_retries is None else max_retries
        delay = self.initial_delay if initial_delay is None else initial_delay
        attempt = 0

        while True:
            attempt += 1
            try:
                value = operation()
                if attempt > 1:
                    logger.info(f"{label} succeeded on attempt {attempt}")
                return RetryResult(success=True, value=value, attempts=attempt)
            except Exception as e:
                if retries <= 0:
                    logger.error(f"{label} failed after {attempt} attempt(s): {e}")
                    return RetryResult(success=False, error=e, attempts=attempt)

                logger.warning(f"{label} failed: {e}. Retrying in {delay:.1f}s...")
                self._sleep(delay)
                retries -= 1
                delay *= 2
