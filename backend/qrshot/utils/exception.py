import datetime


class QrshotError(Exception):
    """qrshot 所有可预期错误的基类"""


class ScanError(QrshotError):
    """图片中没有可识别的二维码，或二维码内容为空"""


class ImageSourceError(QrshotError):
    """图片无法读取或摄像头无法拍摄"""


class TransferBusyError(QrshotError):
    """已有一次发送正在进行"""


class NotReadyError(QrshotError):
    """当前界面状态不允许该操作，例如还没有扫描地址"""


def print_error(fn, err):
    # 定义颜色 ANSI 转义序列
    red = "\033[31m"  # 红色字体
    bold = "\033[1m"  # 加粗
    reset = "\033[0m"  # 重置样式

    fn_name = getattr(fn, '__qualname__', 'unknown function')
    current_time = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    msg = f"{bold}{red}[{current_time}] 不可恢复的错误发生在 {fn_name}: {err}{reset}\n"
    print(msg)


def print_warning(fn, err, warning_level="默认风险"):
    yellow = "\033[33m"  # 黄色字体
    bold = "\033[1m"
    reset = "\033[0m"

    fn_name = getattr(fn, '__qualname__', 'unknown function')
    current_time = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    msg = f"{bold}{yellow}[{current_time}] {warning_level}的警告发生在 {fn_name}: {err}{reset}\n"
    print(msg)
