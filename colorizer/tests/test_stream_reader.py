from pathlib import Path
import io
import sys
import unittest

MODULE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(MODULE_DIR))

from colorize_errors import ReadError
from stream_reader import CRLF, Line, LineEnding, PushbackStream, StreamReader

LF = LineEnding.LF
CR = LineEnding.CR
NONE = LineEnding.NONE


def read_all(data, buffer_size=4096, complete_escapes=False):
    return list(StreamReader(io.BytesIO(data), buffer_size, complete_escapes))


def rejoin(lines):
    return b"".join(line.text + line.ending.as_bytes() for line in lines)


class _NoDataStream:
    def read(self, size):
        return None


class _FailingStream:
    def read(self, size):
        raise OSError(5, "Input/output error")


class _ChunkedStream:
    """Returns the given chunks one per read, whatever size is asked for."""

    def __init__(self, *chunks):
        self._chunks = list(chunks)

    def read(self, size):
        return self._chunks.pop(0) if self._chunks else b""


class LineSplittingTests(unittest.TestCase):
    def test_mixed_endings(self):
        lines = read_all(b"a\r\nb\nc\r")
        self.assertEqual(
            [(l.text, l.ending) for l in lines],
            [(b"a", CRLF), (b"b", LF), (b"c", CR)],
        )
        self.assertEqual(rejoin(lines), b"a\r\nb\nc\r")

    def test_unterminated_last_line(self):
        lines = read_all(b"one\ntwo")
        self.assertEqual(lines[-1], Line(b"two", NONE))

    def test_empty_lines(self):
        lines = read_all(b"\n\r\n\r")
        self.assertEqual([l.ending for l in lines], [LF, CRLF, CR])
        self.assertTrue(all(l.text == b"" for l in lines))

    def test_empty_input(self):
        self.assertEqual(read_all(b""), [])

    def test_crlf_split_across_reads(self):
        # "ab\r" fills the first read exactly; the LF arrives with the next one.
        lines = read_all(b"ab\r\ncd\n", buffer_size=3)
        self.assertEqual(
            [(l.text, l.ending) for l in lines],
            [(b"ab", CRLF), (b"cd", LF)],
        )

    def test_every_buffer_size_preserves_bytes(self):
        data = b"a\r\nbb\n\rccc\r\r\ndddd"
        for size in range(1, len(data) + 2):
            with self.subTest(size=size):
                self.assertEqual(rejoin(read_all(data, buffer_size=size)), data)

    def test_short_lines_are_not_split_by_reads(self):
        lines = read_all(b"hello\nworld\n", buffer_size=8)
        self.assertEqual([l.text for l in lines], [b"hello", b"world"])
        self.assertFalse(any(l.partial for l in lines))

    def test_long_line_flushed_as_partial(self):
        lines = read_all(b"abcdefghij\n", buffer_size=4)
        self.assertTrue(lines[0].partial)
        self.assertEqual(lines[0].ending, NONE)
        self.assertEqual(lines[-1].ending, LF)
        self.assertFalse(lines[-1].partial)
        self.assertEqual(rejoin(lines), b"abcdefghij\n")

    def test_rejects_invalid_buffer_size(self):
        with self.assertRaises(ValueError):
            StreamReader(io.BytesIO(b""), buffer_size=0)
        with self.assertRaises(ValueError):
            StreamReader(io.BytesIO(b""), buffer_size=65537)


class ReadErrorTests(unittest.TestCase):
    def test_no_data_is_read_error(self):
        with self.assertRaises(ReadError):
            list(StreamReader(_NoDataStream()))

    def test_os_error_is_read_error(self):
        with self.assertRaises(ReadError):
            list(StreamReader(_FailingStream()))

    def test_short_read_before_more_data(self):
        with self.assertRaises(ReadError) as ctx:
            list(StreamReader(_ChunkedStream(b"ab", b"cd\n"), buffer_size=4))
        self.assertIn("less than 4 bytes read", str(ctx.exception))

    def test_short_read_at_end_is_eof(self):
        lines = list(StreamReader(_ChunkedStream(b"abcd", b"e\n"), buffer_size=4))
        self.assertEqual(lines, [Line(b"abcd", NONE, partial=True), Line(b"e", LF)])


class PushbackStreamTests(unittest.TestCase):
    def test_pushed_byte_is_read_first(self):
        stream = PushbackStream(io.BytesIO(b"bcd"))
        self.assertEqual(stream.getc(), b"b")
        stream.ungetc(b"b")
        self.assertEqual(stream.read(3), b"bcd")

    def test_single_byte_of_pushback(self):
        stream = PushbackStream(io.BytesIO(b""))
        stream.ungetc(b"x")
        with self.assertRaises(RuntimeError):
            stream.ungetc(b"y")


class EscapeCompletionTests(unittest.TestCase):
    def test_split_at_bracket(self):
        lines = read_all(b"text\x1b[31m", buffer_size=6, complete_escapes=True)
        self.assertEqual(
            [l.text for l in lines],
            [b"text", b"\x1b[31m"],
        )
        self.assertTrue(all(l.partial for l in lines))

    def test_split_before_bracket(self):
        lines = read_all(b"text\x1b[31mmore\n", buffer_size=5, complete_escapes=True)
        self.assertEqual(lines[0].text, b"text")
        self.assertEqual(lines[1].text, b"\x1b[31m")
        self.assertEqual(rejoin(lines), b"text\x1b[31mmore\n")

    def test_split_inside_parameters(self):
        lines = read_all(b"ab\x1b[1;3" + b"2mc\n", buffer_size=7, complete_escapes=True)
        self.assertEqual(lines[1].text, b"\x1b[1;32m")
        self.assertEqual(rejoin(lines), b"ab\x1b[1;32mc\n")

    def test_sequence_longer_than_buffer(self):
        lines = read_all(b"x\x1b[1;4;31my\n", buffer_size=3, complete_escapes=True)
        self.assertEqual([l.text for l in lines], [b"x", b"\x1b[1;4;31m", b"y"])
        self.assertEqual(lines[-1].ending, LF)

    def test_failed_completion_keeps_bytes(self):
        data = b"x\nab\x1b[3\nyz\n"
        lines = read_all(data, buffer_size=7, complete_escapes=True)
        self.assertEqual(lines[1], Line(b"ab\x1b[3", LF))
        self.assertEqual(rejoin(lines), data)

    def test_failed_bracket_is_pushed_back(self):
        data = b"abcd\x1bXY\n"
        lines = read_all(data, buffer_size=5, complete_escapes=True)
        self.assertEqual(rejoin(lines), data)

    def test_eof_during_completion(self):
        data = b"abcd\x1b[1"
        lines = read_all(data, buffer_size=5, complete_escapes=True)
        self.assertEqual(rejoin(lines), data)

    def test_no_completion_without_clean(self):
        lines = read_all(b"x\ntext\x1b[31m", buffer_size=8)
        self.assertEqual([l.text for l in lines], [b"x", b"text\x1b[31m"])


if __name__ == "__main__":
    unittest.main()
