"""multipart 上传管道模块

文件上传时不在内存中预先生成完整的 multipart 请求体，而是：
    1. 后台生产者把表单字段和文件内容编码后写入有界内存管道
    2. 传输层发送请求时从管道读取请求体（与生产者并发执行）
    3. 生产者同时写一份诊断副本：字段值原样保留，文件内容替换为占位符

生产者失败时会关闭管道并携带异常，由执行器在请求结束后统一抛出
"""

from __future__ import annotations

import io
import logging
import shutil
import threading
from collections.abc import Iterator, Mapping
from concurrent.futures import Executor, Future

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary

from httpreq.constants import (
    CAPTURE_LIMIT,
    CONTENT_TYPE_OCTET_STREAM,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PIPE_CAPACITY,
    FILE_PLACEHOLDER,
)
from httpreq.exceptions import PipeClosedError
from httpreq.ingredients import FileUpload, close_uploads

logger = logging.getLogger(__name__)


class BytePipe:
    """
    有界内存字节管道

    写端在缓冲区满时阻塞，读端在缓冲区空时阻塞，形成背压。
    作为请求体交给 requests 时，因为没有长度信息会使用分块传输编码。

    参数:
        capacity: 缓冲区容量（字节）
    """

    def __init__(self, capacity: int = DEFAULT_PIPE_CAPACITY):
        self.capacity = capacity
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._writer_closed = False
        self._writer_error: BaseException | None = None
        self._reader_closed = False

    def write(self, data: bytes) -> int:
        """
        写入数据，缓冲区满时阻塞直到读端取走数据

        异常:
            PipeClosedError: 读端已关闭或写端已关闭
        """
        view = memoryview(data)
        written = 0
        with self._cond:
            while written < len(view):
                if self._reader_closed:
                    raise PipeClosedError("write on pipe with closed reader")
                if self._writer_closed:
                    raise PipeClosedError("write on closed pipe")
                space = self.capacity - len(self._buffer)
                if space <= 0:
                    self._cond.wait()
                    continue
                chunk = view[written : written + space]
                self._buffer += chunk
                written += len(chunk)
                self._cond.notify_all()
        return written

    def close_writer(self, error: BaseException | None = None) -> None:
        """关闭写端；error 不为空时读端在读完剩余数据后抛出该异常"""
        with self._cond:
            self._writer_closed = True
            self._writer_error = error
            self._cond.notify_all()

    def close_reader(self) -> None:
        """关闭读端，阻塞中的写入会以 PipeClosedError 失败"""
        with self._cond:
            self._reader_closed = True
            self._buffer.clear()
            self._cond.notify_all()

    def _read_chunk(self, size: int) -> bytes:
        with self._cond:
            while not self._buffer and not self._writer_closed and not self._reader_closed:
                self._cond.wait()
            if self._buffer:
                data = bytes(self._buffer[:size])
                del self._buffer[:size]
                self._cond.notify_all()
                return data
            if self._writer_error is not None and not self._reader_closed:
                raise self._writer_error
            return b""

    def read(self, size: int | None = -1) -> bytes:
        """读取数据；size 为负数或 None 时读到 EOF"""
        if size is None or size < 0:
            chunks = []
            while chunk := self._read_chunk(DEFAULT_CHUNK_SIZE):
                chunks.append(chunk)
            return b"".join(chunks)
        return self._read_chunk(size)

    def __iter__(self) -> Iterator[bytes]:
        while chunk := self._read_chunk(DEFAULT_CHUNK_SIZE):
            yield chunk


class MultipartWriter:
    """
    流式 multipart/form-data 编码器

    参数:
        stream: 任意带 write 方法的对象
        boundary: 分隔符，None 时随机生成
    """

    def __init__(self, stream, boundary: str | None = None):
        self._stream = stream
        self.boundary = boundary or choose_boundary()
        self._part_open = False
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _create_part(self, field: RequestField) -> None:
        if self._closed:
            raise ValueError("multipart writer is closed")
        delimiter = f"--{self.boundary}\r\n"
        if self._part_open:
            delimiter = "\r\n" + delimiter
        self._stream.write(delimiter.encode("ascii") + field.render_headers().encode("utf-8"))
        self._part_open = True

    def write_field(self, name: str, value) -> None:
        field = RequestField(name=name, data=value)
        field.make_multipart()
        self._create_part(field)
        self.write(str(value).encode("utf-8"))

    def create_form_file(self, name: str, filename: str) -> None:
        """开始一个文件部分，随后通过 write 写入文件内容"""
        field = RequestField(name=name, data=b"", filename=filename)
        field.make_multipart(content_type=CONTENT_TYPE_OCTET_STREAM)
        self._create_part(field)

    def write(self, data: bytes) -> int:
        self._stream.write(data)
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        closing = f"--{self.boundary}--\r\n"
        if self._part_open:
            closing = "\r\n" + closing
        self._stream.write(closing.encode("ascii"))
        self._closed = True


class MultipartUpload:
    """
    multipart 上传任务

    参数:
        files: 待上传文件列表，按顺序写入
        params: 表单参数映射列表，全部写在文件之前
        capacity: 管道缓冲区容量（字节）
        capture_limit: 诊断副本上限（字节）

    使用示例:
        >>> upload = MultipartUpload([FileUpload(open("a.txt", "rb"), "a.txt")], [{"a": "1"}])
        >>> upload.start(executor)
        >>> session.post(url, data=upload.body, headers={"Content-Type": upload.content_type})
        >>> error = upload.finish()
    """

    def __init__(
        self,
        files: list[FileUpload],
        params: list[Mapping] | None = None,
        capacity: int = DEFAULT_PIPE_CAPACITY,
        capture_limit: int = CAPTURE_LIMIT,
    ):
        self.files = list(files)
        self.params = list(params or [])
        self.capture_limit = capture_limit
        self.pipe = BytePipe(capacity)
        self.writer = MultipartWriter(self.pipe)
        self._snapshot_buffer = io.BytesIO()
        self._diagnostic = MultipartWriter(self._snapshot_buffer, boundary=self.writer.boundary)
        self._future: Future | None = None

    @property
    def content_type(self) -> str:
        return self.writer.content_type

    @property
    def body(self) -> BytePipe:
        return self.pipe

    @property
    def snapshot(self) -> bytes:
        """诊断副本，文件内容已替换为占位符"""
        return self._snapshot_buffer.getvalue()[: self.capture_limit]

    def start(self, executor: Executor) -> Future:
        """在执行器中启动生产者，重复调用返回同一个 Future"""
        if self._future is None:
            self._future = executor.submit(self._produce)
        return self._future

    def _produce(self) -> None:
        consumed = 0
        try:
            for params in self.params:
                for key, value in params.items():
                    self.writer.write_field(key, value)
                    self._diagnostic.write_field(key, value)

            ordinal = 0
            for upload in self.files:
                field_name = upload.field_name
                if not field_name:
                    ordinal += 1
                    field_name = f"file{ordinal}"

                consumed += 1
                try:
                    self.writer.create_form_file(field_name, upload.file_name)
                    shutil.copyfileobj(upload.file, self.writer, DEFAULT_CHUNK_SIZE)
                finally:
                    upload.file.close()

                self._diagnostic.create_form_file(field_name, upload.file_name)
                self._diagnostic.write(FILE_PLACEHOLDER)

            self.writer.close()
            self._diagnostic.close()
        except Exception as e:
            self.pipe.close_writer(error=e)
            self._close_pending(consumed)
            raise
        self.pipe.close_writer()

    def _close_pending(self, start: int) -> None:
        close_uploads(self.files[start:])

    def finish(self) -> BaseException | None:
        """
        结束上传并返回生产者的异常

        执行步骤:
            1. 未启动时关闭所有文件并返回
            2. 关闭管道读端，使仍在阻塞写入的生产者退出
            3. 等待生产者结束，读端提前关闭导致的 PipeClosedError 不视为上传失败
        """
        if self._future is None:
            self._close_pending(0)
            return None

        self.pipe.close_reader()
        error = self._future.exception()
        if isinstance(error, PipeClosedError):
            logger.warning("Multipart producer stopped early: request body was not fully consumed")
            return None
        if error is not None:
            logger.error(f"Multipart producer failed: {error}")
        return error
