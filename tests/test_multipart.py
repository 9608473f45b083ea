"""
multipart.py 模块的单元测试

测试用例:
- UT-MP-001: BytePipe 读写与 EOF
- UT-MP-002: BytePipe 写端满时阻塞
- UT-MP-003: 读端关闭后写入失败
- UT-MP-004: 写端携带异常关闭时读端抛出
- UT-MP-005: MultipartWriter 输出格式
- UT-MP-006: 上传顺序与诊断副本
- UT-MP-007: 每个文件只关闭一次
- UT-MP-008: 读取失败时返回错误并关闭剩余文件
- UT-MP-009: 未启动时 finish 关闭所有文件
"""

import io
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from httpreq.constants import FILE_PLACEHOLDER
from httpreq.exceptions import PipeClosedError
from httpreq.ingredients import FileUpload
from httpreq.multipart import BytePipe, MultipartUpload, MultipartWriter


@pytest.fixture
def executor():
    with ThreadPoolExecutor(max_workers=2) as pool:
        yield pool


class TestBytePipe:
    """测试 BytePipe"""

    @pytest.mark.unit
    def test_read_until_eof(self):
        """UT-MP-001: 写端关闭后读到 EOF"""
        # Arrange
        pipe = BytePipe(capacity=16)
        pipe.write(b"hello ")
        pipe.write(b"world")
        pipe.close_writer()

        # Act & Assert
        assert pipe.read(5) == b"hello"
        assert pipe.read() == b" world"
        assert pipe.read(5) == b""

    @pytest.mark.unit
    def test_iteration_yields_chunks(self):
        """迭代返回全部数据"""
        pipe = BytePipe()
        pipe.write(b"abc")
        pipe.close_writer()

        assert b"".join(pipe) == b"abc"

    @pytest.mark.unit
    def test_writer_blocks_when_full(self):
        """UT-MP-002: 缓冲区满时写端阻塞，读端取走数据后继续"""
        # Arrange
        pipe = BytePipe(capacity=4)
        done = threading.Event()

        def produce():
            pipe.write(b"12345678")
            done.set()
            pipe.close_writer()

        thread = threading.Thread(target=produce)

        # Act
        thread.start()
        blocked = not done.wait(timeout=0.2)
        data = pipe.read()
        thread.join(timeout=5)

        # Assert
        assert blocked
        assert data == b"12345678"
        assert done.is_set()

    @pytest.mark.unit
    def test_write_after_reader_closed(self):
        """UT-MP-003: 读端关闭后写入抛出 PipeClosedError"""
        pipe = BytePipe()
        pipe.close_reader()

        with pytest.raises(PipeClosedError):
            pipe.write(b"x")

    @pytest.mark.unit
    def test_close_reader_unblocks_writer(self):
        """阻塞中的写入在读端关闭后失败"""
        # Arrange
        pipe = BytePipe(capacity=2)
        errors = []

        def produce():
            try:
                pipe.write(b"too long for the pipe")
            except PipeClosedError as e:
                errors.append(e)

        thread = threading.Thread(target=produce)
        thread.start()

        # Act
        pipe.close_reader()
        thread.join(timeout=5)

        # Assert
        assert not thread.is_alive()
        assert len(errors) == 1

    @pytest.mark.unit
    def test_writer_error_raised_after_remaining_data(self):
        """UT-MP-004: 剩余数据读完后抛出写端携带的异常"""
        pipe = BytePipe()
        pipe.write(b"partial")
        pipe.close_writer(error=OSError("boom"))

        assert pipe.read(7) == b"partial"
        with pytest.raises(OSError, match="boom"):
            pipe.read(1)


class TestMultipartWriter:
    """测试 MultipartWriter"""

    @pytest.mark.unit
    def test_output_format(self):
        """UT-MP-005: 字段和文件部分的编码格式"""
        # Arrange
        buffer = io.BytesIO()
        writer = MultipartWriter(buffer, boundary="XYZ")

        # Act
        writer.write_field("a", "1")
        writer.create_form_file("file1", "a.txt")
        writer.write(b"data")
        writer.close()

        # Assert
        assert writer.content_type == "multipart/form-data; boundary=XYZ"
        assert buffer.getvalue() == (
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="a"\r\n'
            b"\r\n"
            b"1\r\n"
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="file1"; filename="a.txt"\r\n'
            b"Content-Type: application/octet-stream\r\n"
            b"\r\n"
            b"data\r\n"
            b"--XYZ--\r\n"
        )

    @pytest.mark.unit
    def test_empty_form(self):
        """没有任何部分时只写结束分隔符"""
        buffer = io.BytesIO()
        writer = MultipartWriter(buffer, boundary="XYZ")

        writer.close()

        assert buffer.getvalue() == b"--XYZ--\r\n"

    @pytest.mark.unit
    def test_write_after_close_fails(self):
        """关闭后不能再添加部分"""
        writer = MultipartWriter(io.BytesIO(), boundary="XYZ")
        writer.close()

        with pytest.raises(ValueError):
            writer.write_field("a", "1")


class TestMultipartUpload:
    """测试 MultipartUpload"""

    @pytest.mark.unit
    def test_parts_order_and_snapshot(self, executor, tracking_stream):
        """UT-MP-006: 字段在前，文件按顺序编号，诊断副本使用占位符"""
        # Arrange
        first = tracking_stream(b"first file bytes")
        second = tracking_stream(b"second file bytes")
        upload = MultipartUpload(
            [FileUpload(first, "one.txt"), FileUpload(second, "two.txt")],
            [{"a": "1"}, {"b": "2"}],
        )

        # Act
        upload.start(executor)
        body = upload.body.read()
        error = upload.finish()

        # Assert
        assert error is None
        positions = [body.index(marker) for marker in (b'name="a"', b'name="b"', b'name="file1"', b'name="file2"')]
        assert positions == sorted(positions)
        assert b"first file bytes" in body
        assert b"second file bytes" in body

        snapshot = upload.snapshot
        assert snapshot.count(FILE_PLACEHOLDER) == 2
        assert b"first file bytes" not in snapshot
        assert b"second file bytes" not in snapshot
        assert f"--{upload.writer.boundary}--".encode() in snapshot
        assert upload.content_type.endswith(upload.writer.boundary)

    @pytest.mark.unit
    def test_each_file_closed_once(self, executor, tracking_stream):
        """UT-MP-007: 每个文件复制后关闭且只关闭一次"""
        streams = [tracking_stream(b"x" * 10), tracking_stream(b"y" * 10)]
        upload = MultipartUpload([FileUpload(stream, f"{i}.bin") for i, stream in enumerate(streams)])

        upload.start(executor)
        upload.body.read()
        upload.finish()

        assert [stream.close_calls for stream in streams] == [1, 1]

    @pytest.mark.unit
    def test_explicit_field_name(self, executor, tracking_stream):
        """指定字段名时不占用 fileN 序号"""
        upload = MultipartUpload(
            [FileUpload(tracking_stream(b"1"), "a", field_name="doc"), FileUpload(tracking_stream(b"2"), "b")]
        )

        upload.start(executor)
        body = upload.body.read()
        upload.finish()

        assert b'name="doc"' in body
        assert b'name="file1"' in body
        assert b'name="file2"' not in body

    @pytest.mark.unit
    def test_read_failure_closes_pending_files(self, executor, failing_stream, tracking_stream):
        """UT-MP-008: 读取失败时读端收到异常，后续文件被关闭"""
        # Arrange
        pending = tracking_stream(b"never sent")
        upload = MultipartUpload([FileUpload(failing_stream, "bad.bin"), FileUpload(pending, "next.bin")])

        # Act
        upload.start(executor)
        with pytest.raises(OSError, match="disk read failed"):
            upload.body.read()
        error = upload.finish()

        # Assert
        assert isinstance(error, OSError)
        assert failing_stream.close_calls == 1
        assert pending.close_calls == 1

    @pytest.mark.unit
    def test_finish_without_start_closes_files(self, tracking_stream):
        """UT-MP-009: 未启动的上传在 finish 时关闭所有文件"""
        streams = [tracking_stream(b"a"), tracking_stream(b"b")]
        upload = MultipartUpload([FileUpload(stream, "f") for stream in streams])

        assert upload.finish() is None
        assert [stream.close_calls for stream in streams] == [1, 1]

    @pytest.mark.unit
    def test_reader_closed_early_is_not_an_error(self, executor, tracking_stream, caplog):
        """读端提前关闭时生产者停止，只记录警告"""
        # Arrange
        stream = tracking_stream(b"z" * 4096)
        upload = MultipartUpload([FileUpload(stream, "big.bin")], capacity=16)

        # Act
        upload.start(executor)
        upload.body.read(8)
        error = upload.finish()

        # Assert
        assert error is None
        assert stream.close_calls == 1
        assert "not fully consumed" in caplog.text
