"""HTTP 请求客户端核心模块

提供请求执行器及其配置：
- 组装请求（参数分类、请求体解析、multipart 上传管道）
- 通过 requests.Session 执行请求并统计耗时
- 根据 Content-Type 决定是否立即缓冲响应体
- 调试模式下输出完整的请求/响应诊断信息

模块级函数（request、get、post 等）使用进程共享的默认客户端，
默认客户端及其连接池可以在多个线程之间安全共享。

使用示例:
    >>> import httpreq
    >>> req = httpreq.get("https://api.example.com/users", httpreq.Param({"page": "1"}))
    >>> req.to_json()

    >>> with httpreq.Client(timeout=10, debug=True) as client:
    ...     req = client.post("https://api.example.com/upload", httpreq.files_matching("*.txt"))
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from httpreq.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_POOL_CONFIG,
    DEFAULT_TIMEOUT,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_GET,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_OPTIONS,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
)
from httpreq.exceptions import (
    ReqNetworkError,
    ReqResponseReadError,
    ReqTimeoutError,
    ReqUploadError,
    ReqValidationError,
)
from httpreq.formatter import PrettyDumpFormatter
from httpreq.parser import is_textual_content_type
from httpreq.request import Req
from httpreq.resolver import build_request
from httpreq.utils import DEFAULT_SENSITIVE_HEADERS, DEFAULT_SENSITIVE_PARAMS, sanitize_url

logger = logging.getLogger(__name__)


class Client:
    """
    请求执行器及其配置

    类属性可在子类中覆盖，也可以通过构造函数参数按实例覆盖。

    类属性:
        timeout: 请求整体超时时间（秒）
        verify: SSL 证书验证开关
        debug: 请求完成后是否输出 pretty 格式的诊断信息
        show_cost: 格式化输出时是否显示请求耗时
        max_workers: multipart 上传生产者线程池大小
        pool_config: 连接池配置字典
        default_headers: 默认请求头
        sensitive_headers: 日志中需要脱敏的请求头
        sensitive_params: 日志中需要脱敏的 URL 参数
        enable_sanitization: 是否启用日志脱敏
    """

    # ========== 基础配置 ==========
    # 请求整体超时时间（秒），防止请求无限期挂起
    timeout: int = DEFAULT_TIMEOUT

    # SSL 证书验证开关
    verify: bool = True

    # ========== 诊断开关 ==========
    # 请求完成后以 INFO 级别记录 pretty 格式的诊断信息
    debug: bool = False

    # 诊断输出中是否包含请求耗时
    show_cost: bool = False

    # ========== 并发和连接池配置 ==========
    # multipart 上传生产者线程池大小，每个进行中的上传占用一个线程
    max_workers: int = DEFAULT_MAX_WORKERS

    # 连接池配置字典，配置项: pool_connections(连接池大小), pool_maxsize(连接池最大连接数)
    pool_config: dict[str, Any] = DEFAULT_POOL_CONFIG

    # 默认请求头，所有请求都会携带
    default_headers: dict[str, str] = {}

    # ========== 安全性配置 ==========
    sensitive_headers: set[str] = DEFAULT_SENSITIVE_HEADERS
    sensitive_params: set[str] = DEFAULT_SENSITIVE_PARAMS
    enable_sanitization: bool = True

    def __init__(
        self,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
        verify: bool | None = None,
        debug: bool | None = None,
        show_cost: bool | None = None,
        max_workers: int | None = None,
        pool_config: dict[str, Any] | None = None,
    ):
        """
        初始化客户端

        参数:
            session: 自定义传输层，None 时创建带连接池的 requests.Session
            headers: 实例级默认请求头，与类级 default_headers 合并后写入 Session（包括传入的 Session）
            timeout: 请求超时时间（秒）
            verify: SSL 证书验证开关
            debug: 是否输出诊断信息
            show_cost: 诊断输出中是否包含耗时
            max_workers: 上传生产者线程池大小
            pool_config: 连接池配置（覆盖类级别配置）
        """
        self.timeout = timeout if timeout is not None else self.timeout
        self.verify = verify if verify is not None else self.verify
        self.debug = debug if debug is not None else self.debug
        self.show_cost = show_cost if show_cost is not None else self.show_cost
        self.max_workers = max_workers if max_workers is not None else self.max_workers
        self.pool_config = {**self.pool_config, **(pool_config or {})}
        self.session_headers = {**self.default_headers, **(headers or {})}

        self._owns_session = session is None
        if session is None:
            session = self._create_session()
        else:
            session.headers.update(self.session_headers)
        self.session = session

        self._upload_executor: ThreadPoolExecutor | None = None
        self._upload_executor_lock = threading.Lock()

    def _create_session(self) -> requests.Session:
        """创建带连接池配置的 requests.Session"""
        session = requests.Session()
        session.headers.update(self.session_headers)
        adapter = HTTPAdapter(**self.pool_config)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _get_upload_executor(self) -> ThreadPoolExecutor:
        with self._upload_executor_lock:
            if self._upload_executor is None:
                self._upload_executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="httpreq-upload"
                )
            return self._upload_executor

    def _safe_url(self, url: str) -> str:
        return sanitize_url(url, self.sensitive_params) if self.enable_sanitization else url

    def dump(self, req: Req) -> str:
        """pretty 格式的诊断信息，启用脱敏时隐藏敏感请求头和 URL 参数"""
        if self.enable_sanitization:
            formatter = PrettyDumpFormatter(self.sensitive_headers, self.sensitive_params)
        else:
            formatter = PrettyDumpFormatter()
        return formatter.format(req)

    def assemble(self, method: str, url: str, *ingredients: Any) -> Req:
        """只组装请求，不执行"""
        return build_request(method, url, ingredients)

    def request(self, method: str, url: str, *ingredients: Any) -> Req:
        """
        组装并执行请求

        参数:
            method: HTTP 方法
            url: 请求 URL
            *ingredients: 请求参数（Header、Param、QueryParam、Body、FileUpload 等）

        返回:
            执行完成的 Req 对象

        异常:
            ReqValidationError: URL 为空或请求体来源冲突
            ReqSerializationError: 请求参数中包含序列化失败的错误值
            ReqTimeoutError / ReqNetworkError: 传输层失败
            ReqUploadError: multipart 上传失败
            ReqResponseReadError: 缓冲响应体失败
        """
        return self.send(build_request(method, url, ingredients))

    def send(self, req: Req) -> Req:
        """
        执行已组装的请求

        执行步骤:
            1. 选择传输层（请求参数中的 Session 优先）并生成 PreparedRequest，
               URL 无法解析时结束上传并抛出 ReqValidationError
            2. 启动 multipart 生产者（如果有）
            3. 发送请求并统计耗时，无论成功与否
            4. 结束上传管道，生产者失败优先抛出 ReqUploadError
            5. 转换传输层异常，异常中携带部分填充的 Req
            6. 文本类或无 Content-Type 的响应立即缓冲响应体
            7. 调试模式下记录诊断信息
        """
        session = req.session or self.session
        req._session = session
        req._show_cost = self.show_cost

        safe_url = self._safe_url(req.url)
        upload = req._upload
        try:
            prepared = session.prepare_request(req.request)
            settings = session.merge_environment_settings(prepared.url, {}, True, self.verify, None)
        except requests.exceptions.RequestException as e:
            if upload is not None:
                upload.finish()
            error = ReqValidationError(f"Invalid request to {safe_url}: {e}", req=req)
            logger.error(f"[{req.request_id}] {error}")
            raise error from e
        except BaseException:
            if upload is not None:
                upload.finish()
            raise

        req._prepared = prepared
        logger.info(f"[{req.request_id}] Starting {req.method} request to {safe_url}")

        if upload is not None:
            upload.start(self._get_upload_executor())

        response: requests.Response | None = None
        transport_error: Exception | None = None
        start = time.perf_counter()
        try:
            response = session.send(prepared, timeout=self.timeout, **settings)
        except Exception as e:
            transport_error = e
        finally:
            req._cost = time.perf_counter() - start

        if upload is not None:
            upload_error = upload.finish()
            req._request_body = upload.snapshot
            if upload_error is not None:
                if response is not None:
                    response.close()
                raise ReqUploadError(f"Multipart upload to {safe_url} failed: {upload_error}", req=req) from upload_error

        if transport_error is not None:
            if isinstance(transport_error, requests.exceptions.Timeout):
                error = ReqTimeoutError(f"Request to {safe_url} timed out after {self.timeout}s", req=req)
            elif isinstance(transport_error, requests.exceptions.RequestException):
                error = ReqNetworkError(f"Request to {safe_url} failed: {transport_error}", req=req)
            else:
                raise transport_error
            logger.error(f"[{req.request_id}] Request failed: {error}")
            raise error from transport_error

        req._response = response
        logger.info(f"[{req.request_id}] Received {response.status_code} response in {req.cost:.3f}s")

        content_type = response.headers.get("Content-Type")
        if is_textual_content_type(content_type):
            try:
                req._response_body = response.content
            except requests.exceptions.RequestException as e:
                error = ReqResponseReadError(f"Failed to read response body from {safe_url}: {e}", req=req)
                logger.error(f"[{req.request_id}] {error}")
                raise error from e
        else:
            logger.debug(f"[{req.request_id}] Leaving {content_type} response body unread")

        if self.debug:
            logger.info(f"[{req.request_id}] Request dump:\n{self.dump(req)}")
        return req

    def get(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_GET, url, *ingredients)

    def post(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_POST, url, *ingredients)

    def put(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_PUT, url, *ingredients)

    def patch(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_PATCH, url, *ingredients)

    def delete(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_DELETE, url, *ingredients)

    def head(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_HEAD, url, *ingredients)

    def options(self, url: str, *ingredients: Any) -> Req:
        return self.request(HTTP_METHOD_OPTIONS, url, *ingredients)

    def close(self):
        """
        释放资源

        执行步骤:
            1. 等待进行中的上传生产者结束并关闭线程池
            2. 关闭客户端自己创建的 Session
        """
        with self._upload_executor_lock:
            if self._upload_executor is not None:
                self._upload_executor.shutdown(wait=True)
                self._upload_executor = None
        if self._owns_session:
            self.session.close()
            logger.info("Session closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# 进程共享的默认客户端，首次使用时创建
_default_client: Client | None = None
_default_client_lock = threading.Lock()


def get_default_client() -> Client:
    """获取默认客户端，首次调用时创建"""
    global _default_client
    with _default_client_lock:
        if _default_client is None:
            _default_client = Client()
        return _default_client


def set_default_client(client: Client | None) -> None:
    """替换默认客户端，传入 None 时下次使用重新创建；被替换的客户端会被关闭"""
    global _default_client
    with _default_client_lock:
        previous, _default_client = _default_client, client
    if previous is not None and previous is not client:
        previous.close()


def assemble(method: str, url: str, *ingredients: Any) -> Req:
    """只组装请求，不执行"""
    return build_request(method, url, ingredients)


def request(method: str, url: str, *ingredients: Any) -> Req:
    """使用默认客户端执行请求"""
    return get_default_client().request(method, url, *ingredients)


def get(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_GET, url, *ingredients)


def post(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_POST, url, *ingredients)


def put(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_PUT, url, *ingredients)


def patch(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_PATCH, url, *ingredients)


def delete(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_DELETE, url, *ingredients)


def head(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_HEAD, url, *ingredients)


def options(url: str, *ingredients: Any) -> Req:
    return request(HTTP_METHOD_OPTIONS, url, *ingredients)
