# qrshot/main.py 主函数，FastAPI 控制接口启动入口
import argparse
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import qrshot
from qrshot.core import config
from qrshot.api.v1.session import router as session_router
from qrshot.api.v1.session import initialize as initialize_session_api
from qrshot.services.session import SessionService
from qrshot.utils.exception import print_error
# 全局服务实例
import qrshot.global_vars as global_vars

logger = logging.getLogger(__name__)

# 创建FastAPI应用
app = FastAPI(title="qrshot", version=qrshot.__version__)

# 添加CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """启动事件，请求权限并检查更新"""
    global_vars.session_service = SessionService()
    await global_vars.session_service.initialize()
    initialize_session_api(global_vars.session_service)

    screen = global_vars.session_service.current_screen()
    logger.info("qrshot %s 已启动，当前界面: %s", qrshot.__version__, screen.value)


@app.on_event("shutdown")
async def shutdown_event():
    """关闭事件，关闭仍然打开的连接"""
    if global_vars.session_service is None:
        return
    try:
        await global_vars.session_service.close()
    except Exception as e:
        print_error(shutdown_event, e)
    finally:
        global_vars.session_service = None


# 注册会话路由
app.include_router(session_router, prefix="/api/v1/session")


@app.get("/")
async def root():
    return {"message": "qrshot is running", "version": qrshot.__version__}


def run(argv=None):
    parser = argparse.ArgumentParser(prog="qrshot", description="扫码后把图片发送到接收端")
    parser.add_argument("--host", default=config.CONTROL_HOST, help="控制接口监听地址")
    parser.add_argument("--port", type=int, default=config.CONTROL_PORT, help="控制接口端口")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="日志级别")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(),
                        format='%(asctime)s - %(levelname)s - %(message)s')
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    run()
