"""
httpreq HTTP 请求构建模块

把无序的请求参数组装为一次 HTTP 请求，执行后返回可检查、可下载、可格式化输出的 Req 对象

主要组件:
    - Client: 请求执行器及其配置
    - 请求参数: Header, Param, QueryParam, Host, FileUpload, Body
    - 请求体生成: as_json_body, as_xml_body, files_matching
    - Req: 请求及响应的包装
    - 异常类: ReqError 及其子类

使用示例:
    >>> import httpreq
    >>>
    >>> req = httpreq.post(
    ...     "https://api.example.com/users",
    ...     httpreq.Header({"Authorization": "Bearer token"}),
    ...     httpreq.as_json_body({"name": "john"}),
    ... )
    >>> req.to_json()
    >>> print(f"{req:+}")
"""

# 核心客户端
from httpreq.client import (
    Client,
    assemble,
    delete,
    get,
    get_default_client,
    head,
    options,
    patch,
    post,
    put,
    request,
    set_default_client,
)

# 请求参数
from httpreq.body import Body, as_json_body, as_xml_body
from httpreq.ingredients import FileUpload, Header, Host, Param, QueryParam, files_matching

# 请求包装
from httpreq.request import Req

# 异常类
from httpreq.exceptions import (
    PipeClosedError,
    ReqError,
    ReqNetworkError,
    ReqResponseReadError,
    ReqSerializationError,
    ReqTimeoutError,
    ReqUploadError,
    ReqValidationError,
)

# 格式化器
from httpreq.formatter import (
    AutoDumpFormatter,
    BaseDumpFormatter,
    CompactDumpFormatter,
    PrettyDumpFormatter,
)

__all__ = [
    # 核心类
    "Client",
    "Req",
    # 请求函数
    "request",
    "assemble",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "head",
    "options",
    "get_default_client",
    "set_default_client",
    # 请求参数
    "Body",
    "Header",
    "Param",
    "QueryParam",
    "Host",
    "FileUpload",
    "as_json_body",
    "as_xml_body",
    "files_matching",
    # 异常
    "ReqError",
    "ReqValidationError",
    "ReqSerializationError",
    "ReqNetworkError",
    "ReqTimeoutError",
    "ReqResponseReadError",
    "ReqUploadError",
    "PipeClosedError",
    # 格式化器
    "BaseDumpFormatter",
    "PrettyDumpFormatter",
    "CompactDumpFormatter",
    "AutoDumpFormatter",
]

__version__ = "1.0.0"
