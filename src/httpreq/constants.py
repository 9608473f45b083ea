"""
HTTP 请求构建常量配置模块

定义请求构建、上传管道、响应捕获使用的常量和默认配置
"""

import re

# HTTP 方法常量
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_HEAD = "HEAD"
HTTP_METHOD_OPTIONS = "OPTIONS"

# 表单参数拼接到 URL 而不是请求体的方法集合
READ_STYLE_METHODS = {HTTP_METHOD_GET}

# 允许 multipart 文件上传的方法集合（PATCH/DELETE 不上传文件）
UPLOAD_METHODS = {HTTP_METHOD_POST, HTTP_METHOD_PUT}

# 默认配置
DEFAULT_TIMEOUT = 120  # 默认整体超时时间（秒）
DEFAULT_MAX_WORKERS = 10  # 上传生产者线程池最大工作线程数

# 连接池配置
POOL_CONNECTIONS = 100  # 连接池大小
POOL_MAXSIZE = 100  # 连接池最大连接数

DEFAULT_POOL_CONFIG = {
    "pool_connections": POOL_CONNECTIONS,  # 连接池大小
    "pool_maxsize": POOL_MAXSIZE,  # 连接池最大连接数
}

# 捕获配置
CAPTURE_LIMIT = 102400  # 诊断用请求体捕获上限（字节）
DEFAULT_PIPE_CAPACITY = 65536  # 上传管道缓冲区容量（字节）
DEFAULT_CHUNK_SIZE = 8192  # 默认分块大小（字节）

# 诊断副本中代替文件内容的占位符
FILE_PLACEHOLDER = b"******"

# 内容类型
CONTENT_TYPE_JSON = "application/json; charset=UTF-8"
CONTENT_TYPE_XML = "application/xml; charset=UTF-8"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded; charset=UTF-8"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

# 需要立即缓冲响应体的文本类内容类型
TEXT_CONTENT_TYPE_PATTERN = re.compile("xml|json|text")

# 换行符（compact/auto 格式化使用）
NEWLINE_PATTERN = re.compile(r"\n|\r")

