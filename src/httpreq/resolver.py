"""
请求体解析模块

根据分类结果确定唯一的请求体并完成 URL 组装。优先级:
    1. 有上传文件且方法为 POST/PUT：使用 multipart 上传管道（表单参数一起写入）
    2. 否则有表单参数：GET 拼接到查询字符串，其他方法编码为 urlencoded 请求体
    3. 查询参数总是拼接到查询字符串
    4. 调用方未设置 Content-Type 时使用请求体自带的内容类型
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests

from httpreq.body import Body
from httpreq.classifier import RequestParts, classify, uploads_in
from httpreq.constants import CONTENT_TYPE_FORM, READ_STYLE_METHODS, UPLOAD_METHODS
from httpreq.exceptions import ReqValidationError
from httpreq.ingredients import close_uploads
from httpreq.multipart import MultipartUpload
from httpreq.request import Req
from httpreq.utils import append_query, encode_params

logger = logging.getLogger(__name__)


def build_request(method: str, url: str, ingredients: Iterable[Any] = ()) -> Req:
    """
    分类请求参数并组装请求，不发起网络请求

    参数:
        method: HTTP 方法
        url: 请求 URL
        ingredients: 请求参数列表

    返回:
        组装完成的 Req 对象

    异常:
        ReqValidationError: URL 为空或请求体来源冲突
        Exception: 参数中的错误值原样抛出

    执行步骤:
        1. 校验 URL
        2. 分类请求参数
        3. 解析请求体并拼接查询字符串
        4. 生成 requests.Request
    """
    ingredients = list(ingredients)
    if not url:
        close_uploads(uploads_in(ingredients))
        raise ReqValidationError("url not specified")

    req = Req(method, url)
    parts = classify(ingredients)
    try:
        url, upload = resolve_body(req.method, url, parts)
    except BaseException:
        close_uploads(parts.files)
        raise

    headers = parts.headers
    if parts.host:
        headers["Host"] = parts.host

    data: Any = None
    if upload is not None:
        headers["Content-Type"] = upload.content_type
        data = upload.body
    elif parts.body is not None:
        if parts.body.content_type and "Content-Type" not in headers:
            headers["Content-Type"] = parts.body.content_type
        data = parts.body.data

    req._url = url
    req._upload = upload
    req._request_body = parts.captured_body
    req._session = parts.session
    req._request = requests.Request(
        method=req.method,
        url=url,
        headers=headers,
        data=data,
        cookies=parts.cookies,
    )
    return req


def resolve_body(method: str, url: str, parts: RequestParts) -> tuple[str, MultipartUpload | None]:
    """
    按优先级确定请求体，返回拼接查询字符串后的 URL 和 multipart 上传任务

    表单参数编码后的请求体会写回 parts.body
    """
    upload = None
    if parts.files and method in UPLOAD_METHODS:
        if parts.body is not None:
            raise ReqValidationError("can not set both body and file uploads")
        upload = MultipartUpload(parts.files, parts.params)
    else:
        if parts.files:
            logger.warning(f"File uploads are ignored for {method} requests")
            close_uploads(parts.files)
            parts.files = []
        if parts.params:
            params = encode_params(parts.params)
            if method in READ_STYLE_METHODS:
                url = append_query(url, params)
            else:
                if parts.body is not None:
                    raise ReqValidationError("can not set both body and params")
                parts.set_body(Body(data=params.encode("ascii"), content_type=CONTENT_TYPE_FORM))

    if parts.query_params:
        url = append_query(url, encode_params(parts.query_params))

    return url, upload
