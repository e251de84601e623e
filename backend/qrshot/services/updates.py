# qrshot/services/updates.py 版本更新检查，失败一律忽略
import asyncio
import re
import sys
from typing import Optional, Tuple

import aiohttp

import qrshot
from qrshot.core import config
from qrshot.models.session import UpdateInfo
from qrshot.utils.exception import print_warning


def parse_version(version: str) -> Tuple[int, ...]:
    """只比较开头的数字段，例如 "1.2.0rc1" -> (1, 2, 0)"""
    parts = []
    for piece in version.strip().split('.'):
        match = re.match(r'\d+', piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


async def check_for_update(current_version: str = qrshot.__version__,
                           url: str = config.UPDATE_INDEX_URL) -> Optional[UpdateInfo]:
    """
    查询包索引上的最新版本

    Returns:
        有新版本时返回 UpdateInfo，否则（包括任何失败）返回 None
    """
    try:
        timeout = aiohttp.ClientTimeout(total=config.update_check_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)

        latest = data["info"]["version"]
        if parse_version(latest) > parse_version(current_version):
            print(f"【更新】发现新版本 {latest}（当前 {current_version}）")
            return UpdateInfo(current_version=current_version, latest_version=latest)
    except Exception as e:
        print_warning(check_for_update, e, "低风险")
    return None


async def apply_update(update: UpdateInfo) -> bool:
    """
    用 pip 安装新版本，安装完成后需要重启服务才生效

    Returns:
        bool: 安装是否成功
    """
    try:
        process = await asyncio.create_subprocess_exec(
            sys.executable, "-m", "pip", "install", "--upgrade",
            f"{config.PACKAGE_NAME}=={update.latest_version}",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        output, _ = await process.communicate()
        if process.returncode != 0:
            print_warning(apply_update, output.decode(errors="replace")[-500:], "中风险")
            return False
        print(f"【更新】已安装 {update.latest_version}，重启后生效")
        return True
    except Exception as e:
        print_warning(apply_update, e, "中风险")
        return False
