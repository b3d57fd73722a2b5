"""
存活探测 HTTP 服务

只表示进程存活，不反映同步状态。
"""
import threading
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from loguru import logger


def create_liveness_app(message: str) -> FastAPI:
    """任意路径的 GET/POST/HEAD 都返回 200 和固定文本"""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.api_route("/{path:path}", methods=["GET", "POST", "HEAD"], include_in_schema=False)
    async def liveness(path: str) -> PlainTextResponse:
        return PlainTextResponse(message)

    return app


class LivenessServer:
    """在后台线程中运行的存活探测服务"""

    def __init__(self, port: int, message: str, host: str = "0.0.0.0"):
        self.host = host
        self.port = port
        self.message = message
        self.app = create_liveness_app(message)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def server_port(self) -> Optional[int]:
        return self.port if self._server else None

    def start(self) -> None:
        if self._server is not None:
            return
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        # 非主线程中 uvicorn 不安装信号处理器，由主程序负责退出
        self._thread = threading.Thread(
            target=self._server.run,
            name="LivenessThread"
        )
        self._thread.daemon = True
        self._thread.start()
        logger.info(f"Server listening on port {self.port}")

    def wait_started(self, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._server is not None and self._server.started:
                return True
            time.sleep(0.05)
        return False

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout=5)
        self._server = None
        self._thread = None
