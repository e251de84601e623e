"""
qrshot：扫描二维码拿到接收端地址，选一张图片或拍照，缩小后通过 websocket 发过去。
"""
__version__ = "1.0.0"
