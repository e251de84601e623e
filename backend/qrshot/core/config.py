# qrshot/core/config.py 配置文件
import os
from dotenv import load_dotenv

# .env 中的值覆盖下方默认值
load_dotenv()


# 传输
PORT = int(os.getenv("QRSHOT_PORT", "3000")) # 接收端 websocket 端口，固定
WS_SCHEME = "ws"
MESSAGE_TAG = "screenshot" # 消息标签
MESSAGE_DELIMITER = ","
open_timeout = float(os.getenv("QRSHOT_OPEN_TIMEOUT", "10")) # 建立连接超时，单位：秒
max_message_size = None # 接收端回传消息的大小上限，None 为不限制；发送方向不受限制

# 图片归一化
MAX_DIMENSION = 1000 # 最长边上限，单位：像素
compress = 0.7 # 压缩质量 [0, 1]，1 为最高质量
OUTPUT_FORMAT = "PNG"

# 图片来源
camera_index = int(os.getenv("QRSHOT_CAMERA_INDEX", "0"))
LIBRARY_DIR = os.getenv("QRSHOT_LIBRARY_DIR", os.path.expanduser("~/Pictures"))
camera_warmup_frames = 5 # 部分摄像头前几帧偏暗，丢弃
scan_max_frames = int(os.getenv("QRSHOT_SCAN_MAX_FRAMES", "150")) # 摄像头扫码最多读取的帧数，约 5 秒

# 通知
snack_auto_hiding_time = 5000 # 单位：毫秒
SUCCESS_MESSAGE = "图片发送成功！"
ERROR_MESSAGE = "出错了……"

# 更新检查
PACKAGE_NAME = "qrshot"
UPDATE_INDEX_URL = os.getenv("QRSHOT_UPDATE_URL", "https://pypi.org/pypi/qrshot/json")
update_check_timeout = 5.0 # 单位：秒
UPDATE_TITLE = "有新版本可用："
UPDATE_PROMPT = "现在安装吗？"

# 控制接口
CONTROL_HOST = os.getenv("QRSHOT_HOST", "127.0.0.1")
CONTROL_PORT = int(os.getenv("QRSHOT_CONTROL_PORT", "8000"))
LOG_LEVEL = os.getenv("QRSHOT_LOG_LEVEL", "INFO")
