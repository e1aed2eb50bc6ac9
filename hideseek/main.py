# hideseek/main.py

from contextlib import asynccontextmanager

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hideseek.api.middleware.error_handler import setup_exception_handlers
from hideseek.api.routes import games, maintenance, players
from hideseek.application.services.container import Services, build_services
from hideseek.config import game_config, settings
from hideseek.utils.logger import logger, setup_logger


def create_app(services: Services = None, start_cleanup: bool = None) -> FastAPI:
    """
    建立 FastAPI 應用。

    Args:
        services: 預先建立的服務組合（測試時注入），未提供則在啟動時依設定建立
        start_cleanup: 是否啟動排程清理，未指定時依 CLEANUP_ENABLED 設定

    Returns:
        FastAPI 應用
    """
    setup_logger(level=settings.log_level)
    run_cleanup = settings.cleanup_enabled if start_cleanup is None else start_cleanup

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services(settings, game_config)
        logger.info("API 服務啟動中", extra={
            "environment": settings.app_env,
            "port": settings.app_port,
            "backend": settings.storage_backend,
        })
        if run_cleanup:
            app.state.services.cleanup.start()
        yield
        logger.info("API 服務關閉中")
        app.state.services.close()

    app = FastAPI(
        title="Hide & Seek Storage API",
        description="捉迷藏遊戲局、猜測紀錄與玩家等級的儲存服務",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 設定 CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # 在生產環境中應該限制來源
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 設定全局異常處理
    setup_exception_handlers(app)

    # 加載 API 路由
    app.include_router(games.router, prefix="/api")
    app.include_router(players.router, prefix="/api")
    app.include_router(maintenance.router, prefix="/api")

    # 簡單的健康檢查端點
    @app.get("/health")
    def health_check():
        storage = app.state.services.facade.health_check()
        return {
            "status": "ok" if storage["storage"] else "degraded",
            "environment": settings.app_env,
            "version": app.version,
            "storage": storage,
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("hideseek.main:app", host="0.0.0.0", port=settings.app_port, reload=settings.app_env == "development")
