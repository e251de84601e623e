# qrshot/global_vars.py 全局服务实例，在 main.py 的 startup 中创建
from typing import Optional

from qrshot.services.session import SessionService

session_service: Optional[SessionService] = None
