"""
请求参数分类模块

把无序、异构的请求参数列表按类型划分到不同的桶中。
支持的参数类型（按匹配顺序，先匹配者生效）:

    Header                 追加请求头，同名键追加为多值
    CaseInsensitiveDict    整体替换请求头集合
    QueryParam             查询参数
    Param                  表单参数
    Body                   已物化的请求体
    Host                   覆盖 Host 请求头
    str / bytes            字面量请求体（不设置 Content-Type）
    FileUpload             单个上传文件
    list / tuple           FileUpload 列表
    http.cookiejar.Cookie  请求 Cookie
    requests.Session       覆盖本次请求使用的传输层
    Exception              预先存在的错误，立即抛出，不发起网络请求
    带 read 方法的对象      流式请求体，经 TeeReader 读取并捕获诊断前缀

无法识别的参数会被忽略
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from http.cookiejar import Cookie
from typing import Any

import requests
from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict

from httpreq.body import Body
from httpreq.capture import TeeReader
from httpreq.exceptions import ReqValidationError
from httpreq.ingredients import FileUpload, Header, Host, Param, QueryParam, close_uploads

logger = logging.getLogger(__name__)


class RequestParts:
    """
    分类结果

    属性:
        headers: 请求头集合
        params: 表单参数映射列表（保持出现顺序）
        query_params: 查询参数映射列表（保持出现顺序）
        files: 上传文件列表
        body: 请求体，最多一个来源
        captured_body: 诊断用请求体（流式来源时为受限前缀）
        session: 覆盖的传输层
        cookies: 请求 Cookie
        host: 覆盖的 Host
    """

    def __init__(self):
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self.params: list[Param] = []
        self.query_params: list[QueryParam] = []
        self.files: list[FileUpload] = []
        self.body: Body | None = None
        self.captured_body: bytes | None = None
        self.session: requests.Session | None = None
        self.cookies = RequestsCookieJar()
        self.host: str | None = None

    def set_body(self, body: Body, captured: bytes | None = None) -> None:
        """设置请求体，已有请求体时抛出冲突异常"""
        if self.body is not None:
            raise ReqValidationError("can not set more than one request body")
        self.body = body
        self.captured_body = body.data if captured is None else captured


def _add_header(parts: RequestParts, item: Header) -> None:
    for key, value in item.items():
        value = str(value)
        if key in parts.headers:
            parts.headers[key] = f"{parts.headers[key]}, {value}"
        else:
            parts.headers[key] = value


def _replace_headers(parts: RequestParts, item: CaseInsensitiveDict) -> None:
    parts.headers = CaseInsensitiveDict(item)


def _add_query_param(parts: RequestParts, item: QueryParam) -> None:
    parts.query_params.append(item)


def _add_param(parts: RequestParts, item: Param) -> None:
    parts.params.append(item)


def _set_body(parts: RequestParts, item: Body) -> None:
    parts.set_body(item)


def _set_host(parts: RequestParts, item: Host) -> None:
    parts.host = str(item)


def _set_literal_body(parts: RequestParts, item: str | bytes | bytearray) -> None:
    data = item.encode("utf-8") if isinstance(item, str) else bytes(item)
    parts.set_body(Body(data=data))


def _add_file(parts: RequestParts, item: FileUpload) -> None:
    parts.files.append(item)


def _add_files(parts: RequestParts, item: list | tuple) -> None:
    uploads = [upload for upload in item if isinstance(upload, FileUpload)]
    if len(uploads) != len(item):
        logger.debug(f"Ignoring {len(item) - len(uploads)} non-FileUpload items in file list")
    parts.files.extend(uploads)


def _add_cookie(parts: RequestParts, item: Cookie) -> None:
    parts.cookies.set_cookie(item)


def _set_session(parts: RequestParts, item: requests.Session) -> None:
    parts.session = item


def _raise_error(parts: RequestParts, item: Exception) -> None:
    raise item


def _set_stream_body(parts: RequestParts, item: Any) -> None:
    tee = TeeReader(item)
    try:
        data = tee.read()
    finally:
        tee.close()
    parts.set_body(Body(data=data), captured=tee.captured)


# 参数类型与处理函数的对应关系，按顺序匹配
INGREDIENT_HANDLERS: tuple[tuple[type | tuple[type, ...], Callable[[RequestParts, Any], None]], ...] = (
    (Header, _add_header),
    (CaseInsensitiveDict, _replace_headers),
    (QueryParam, _add_query_param),
    (Param, _add_param),
    (Body, _set_body),
    (Host, _set_host),
    ((str, bytes, bytearray), _set_literal_body),
    (FileUpload, _add_file),
    ((list, tuple), _add_files),
    (Cookie, _add_cookie),
    (requests.Session, _set_session),
    (Exception, _raise_error),
)


def _is_readable(item: Any) -> bool:
    return callable(getattr(item, "read", None))


def _classify_item(parts: RequestParts, item: Any) -> None:
    for kind, handler in INGREDIENT_HANDLERS:
        if isinstance(item, kind):
            handler(parts, item)
            return
    if _is_readable(item):
        _set_stream_body(parts, item)
    else:
        logger.debug(f"Ignoring unsupported request ingredient: {type(item).__name__}")


def uploads_in(items: Iterable[Any]) -> list[FileUpload]:
    """参数列表中的全部上传文件，包括文件列表中的"""
    uploads = []
    for item in items:
        if isinstance(item, FileUpload):
            uploads.append(item)
        elif isinstance(item, (list, tuple)):
            uploads.extend(upload for upload in item if isinstance(upload, FileUpload))
    return uploads


def classify(ingredients: Iterable[Any]) -> RequestParts:
    """
    将请求参数划分到各个桶中

    参数:
        ingredients: 请求参数列表

    返回:
        RequestParts 分类结果

    异常:
        ReqValidationError: 设置了多个请求体
        Exception: 参数中包含错误值时原样抛出

    分类失败时关闭参数中的全部上传文件后再抛出
    """
    items = list(ingredients)
    parts = RequestParts()
    for index, item in enumerate(items):
        try:
            _classify_item(parts, item)
        except BaseException:
            close_uploads(parts.files + uploads_in(items[index + 1 :]))
            raise
    return parts
