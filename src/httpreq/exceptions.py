"""
HTTP 请求异常模块

定义请求构建、执行、上传相关的异常类，提供统一的错误处理机制
"""

from __future__ import annotations


class ReqError(Exception):
    """
    请求异常基类

    所有自定义异常的基类，用于统一捕获和处理请求相关错误

    参数:
        message: 错误描述信息
        req: 出错时已部分填充的 Req 对象（可选）

    属性:
        req: 保存请求包装对象，便于在失败时查看耗时和请求体等诊断信息
    """

    def __init__(self, message: str, req: Req | None = None):  # noqa: F821
        super().__init__(message)
        self.req = req


class ReqValidationError(ReqError):
    """
    输入验证异常

    URL 为空、请求体来源冲突、文件匹配为空等在网络 I/O 之前检测到的错误
    """


class ReqSerializationError(ReqError):
    """
    序列化异常

    JSON/XML 编码失败时生成。该异常以错误值的形式返回，
    作为普通参数传入请求后由分类器抛出
    """


class ReqNetworkError(ReqError):
    """
    网络连接异常

    当网络连接失败、DNS 解析失败、TLS 握手失败等传输层问题时抛出此异常
    """


class ReqTimeoutError(ReqError):
    """
    请求超时异常

    当请求执行时间超过设定的超时时间时抛出此异常
    """


class ReqResponseReadError(ReqError):
    """
    响应读取异常

    缓冲文本类响应体失败时抛出，req.response 仍然可用于手动处理
    """


class ReqUploadError(ReqError):
    """
    上传管道异常

    multipart 生产者在写入字段或复制文件内容时失败，由执行器在请求结束后抛出
    """


class PipeClosedError(ReqError):
    """管道读端已关闭，写入无法继续"""
