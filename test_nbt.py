from __future__ import annotations

import gzip
import io
import struct
import unittest
import zlib

from regionfix import nbt
from regionfix.codec import Codec
from regionfix.constants import COMPRESSION_GZIP, COMPRESSION_ZLIB, MAX_NESTING_DEPTH, MAX_TREE_LEVELS
from regionfix.errors import (
    DecodeError,
    InvalidName,
    InvalidRootTag,
    InvalidTag,
    ListLengthError,
    PayloadReadError,
    RecursionLimit,
)


def _nested_compounds(levels: int) -> bytes:
    """Root compound plus (levels - 1) compounds nested inside it, all named 'a'."""
    return b"\x0a\x00\x00" + b"\x0a\x00\x01a" * (levels - 1) + b"\x00" * levels


def _compounds_through_lists(levels: int) -> bytes:
    """Like _nested_compounds, but each inner compound is the single element of a list named 'l'."""
    step = _named(nbt.TAG_LIST, "l", b"\x0a" + struct.pack(">I", 1))
    return b"\x0a\x00\x00" + step * (levels - 1) + b"\x00" * levels


def _named(tag_id: int, name: str, payload: bytes) -> bytes:
    raw = name.encode("utf-8")
    return bytes([tag_id]) + struct.pack(">H", len(raw)) + raw + payload


def _root(*items: bytes) -> bytes:
    return b"\x0a\x00\x00" + b"".join(items) + b"\x00"


class DecoderTests(unittest.TestCase):
    def test_all_scalar_and_array_tags(self):
        data = _root(
            _named(nbt.TAG_BYTE, "b", struct.pack(">b", -3)),
            _named(nbt.TAG_SHORT, "s", struct.pack(">h", -300)),
            _named(nbt.TAG_INT, "i", struct.pack(">i", 70000)),
            _named(nbt.TAG_LONG, "l", struct.pack(">q", -(2 ** 40))),
            _named(nbt.TAG_FLOAT, "f", struct.pack(">f", 1.5)),
            _named(nbt.TAG_DOUBLE, "d", struct.pack(">d", -2.25)),
            _named(nbt.TAG_BYTE_ARRAY, "ba", struct.pack(">I", 3) + b"\x01\x02\x03"),
            _named(nbt.TAG_STRING, "str", struct.pack(">H", 5) + "héllo".encode("utf-8")[:5]),
            _named(nbt.TAG_INT_ARRAY, "ia", struct.pack(">I3i", 3, 1, -2, 3)),
            _named(nbt.TAG_LONG_ARRAY, "la", struct.pack(">I2q", 2, 2 ** 40, -1)),
        )
        root = nbt.loads(data)
        self.assertEqual(root["b"], nbt.Byte(-3))
        self.assertEqual(root["s"], nbt.Short(-300))
        self.assertEqual(root["i"].as_int(), 70000)
        self.assertEqual(root["l"], nbt.Long(-(2 ** 40)))
        self.assertEqual(root["f"].value, 1.5)
        self.assertEqual(root["d"].value, -2.25)
        # byte array contents are consumed but not kept
        self.assertEqual(root["ba"].tag, nbt.TAG_BYTE_ARRAY)
        self.assertEqual(root["ba"].value, b"")
        self.assertEqual(root["ia"].value, [1, -2, 3])
        self.assertEqual(root["la"].value, [2 ** 40, -1])
        self.assertIsNone(root["l"].as_int())

    def test_string_and_empty_string(self):
        data = _root(
            _named(nbt.TAG_STRING, "name", struct.pack(">H", 6) + "héllo".encode("utf-8")),
            _named(nbt.TAG_STRING, "", struct.pack(">H", 0)),
        )
        root = nbt.loads(data)
        self.assertEqual(root["name"].value, "héllo")
        self.assertEqual(root[""].value, "")

    def test_invalid_utf8_name(self):
        data = b"\x0a\x00\x00" + b"\x01\x00\x02\xff\xfe" + b"\x05" + b"\x00"
        with self.assertRaises(InvalidName):
            nbt.loads(data)

    def test_root_name_is_ignored(self):
        data = b"\x0a\x00\x04root" + _named(nbt.TAG_INT, "x", struct.pack(">i", 1)) + b"\x00"
        self.assertEqual(nbt.loads(data), {"x": nbt.Int(1)})

    def test_root_name_is_not_decoded(self):
        data = b"\x0a\x00\x02\xff\xfe" + _named(nbt.TAG_INT, "x", struct.pack(">i", 1)) + b"\x00"
        self.assertEqual(nbt.loads(data), {"x": nbt.Int(1)})

    def test_root_must_be_compound(self):
        with self.assertRaises(InvalidRootTag) as ctx:
            nbt.loads(b"\x08\x00\x00\x00\x00")
        self.assertEqual(ctx.exception.tag_id, 8)

    def test_unknown_tag_id(self):
        data = _root(_named(13, "bad", b""))
        with self.assertRaises(InvalidTag) as ctx:
            nbt.loads(data)
        self.assertEqual(ctx.exception.tag_id, 13)

    def test_unknown_list_element_tag(self):
        data = _root(_named(nbt.TAG_LIST, "l", b"\x63" + struct.pack(">I", 0)))
        with self.assertRaises(InvalidTag):
            nbt.loads(data)

    def test_duplicate_names_last_wins(self):
        data = _root(
            _named(nbt.TAG_INT, "k", struct.pack(">i", 1)),
            _named(nbt.TAG_STRING, "k", struct.pack(">H", 1) + b"z"),
        )
        self.assertEqual(nbt.loads(data), {"k": nbt.String("z")})

    def test_lists(self):
        data = _root(
            _named(nbt.TAG_LIST, "ints", b"\x03" + struct.pack(">I3i", 3, 7, 8, 9)),
            _named(nbt.TAG_LIST, "empty", b"\x00" + struct.pack(">I", 0)),
            _named(nbt.TAG_LIST, "ends", b"\x00" + struct.pack(">I", 2)),
            _named(
                nbt.TAG_LIST,
                "comps",
                b"\x0a" + struct.pack(">I", 2) + _named(nbt.TAG_BYTE, "v", b"\x01") + b"\x00" + b"\x00",
            ),
        )
        root = nbt.loads(data)
        self.assertEqual([v.value for v in root["ints"].value], [7, 8, 9])
        self.assertEqual(root["empty"].value, [])
        self.assertEqual(root["ends"].value, [nbt.ABSENT, nbt.ABSENT])
        self.assertEqual(root["comps"].value, [nbt.Compound({"v": nbt.Byte(1)}), nbt.Compound({})])

    def test_end_list_length_is_bounded(self):
        data = _root(_named(nbt.TAG_LIST, "l", b"\x00" + struct.pack(">I", 0xFFFFFFFF)))
        with self.assertRaises(ListLengthError):
            nbt.loads(data)

    def test_nesting_depth_limit(self):
        self.assertEqual(MAX_NESTING_DEPTH, 100)
        root = nbt.loads(_nested_compounds(100))
        depth = 1
        while "a" in root:
            root = root["a"].value
            depth += 1
        self.assertEqual(depth, 100)
        with self.assertRaises(RecursionLimit):
            nbt.loads(_nested_compounds(101))

    def test_lists_do_not_count_toward_compound_depth(self):
        root = nbt.loads(_compounds_through_lists(MAX_NESTING_DEPTH))
        depth = 1
        while "l" in root:
            (inner,) = root["l"].value
            root = inner.value
            depth += 1
        self.assertEqual(depth, MAX_NESTING_DEPTH)
        with self.assertRaises(RecursionLimit):
            nbt.loads(_compounds_through_lists(MAX_NESTING_DEPTH + 1))

    def test_list_only_nesting_is_bounded_by_tree_levels(self):
        self.assertEqual(MAX_TREE_LEVELS, 256)
        # root compound plus 255 lists fits, one more list does not
        for lists, ok in ((MAX_TREE_LEVELS - 1, True), (MAX_TREE_LEVELS, False)):
            data = (
                b"\x0a\x00\x00"
                + _named(nbt.TAG_LIST, "l", b"")
                + (b"\x09" + struct.pack(">I", 1)) * (lists - 1)
                + b"\x00" + struct.pack(">I", 0)
                + b"\x00"
            )
            with self.subTest(lists=lists):
                if ok:
                    self.assertEqual(nbt.loads(data)["l"].tag, nbt.TAG_LIST)
                else:
                    with self.assertRaises(RecursionLimit):
                        nbt.loads(data)

    def test_deep_lists_hit_the_limit_not_the_interpreter(self):
        # list of list of list ... never closes; depth must stop it long before EOF matters
        data = b"\x0a\x00\x00" + _named(nbt.TAG_LIST, "l", b"") + (b"\x09" + struct.pack(">I", 1)) * 5000
        with self.assertRaises(RecursionLimit):
            nbt.loads(data)

    def test_truncated_input(self):
        full = _root(_named(nbt.TAG_INT_ARRAY, "ia", struct.pack(">I3i", 3, 1, 2, 3)))
        for cut in (0, 1, 2, 5, len(full) - 6, len(full) - 1):
            with self.subTest(cut=cut):
                with self.assertRaises(PayloadReadError):
                    nbt.loads(full[:cut])

    def test_huge_declared_array_is_a_short_read(self):
        data = _root(_named(nbt.TAG_BYTE_ARRAY, "ba", struct.pack(">I", 0xFFFFFFF0) + b"\x00" * 10))
        with self.assertRaises(PayloadReadError):
            nbt.loads(data)
        data = _root(_named(nbt.TAG_LONG_ARRAY, "la", struct.pack(">I", 0x7FFFFFFF) + b"\x00" * 16))
        with self.assertRaises(PayloadReadError):
            nbt.loads(data)

    def test_decode_errors_share_a_base(self):
        for exc in (InvalidRootTag(1), InvalidTag(99), InvalidName("x"), RecursionLimit("x"), ListLengthError("x")):
            self.assertIsInstance(exc, DecodeError)
        self.assertNotIsInstance(PayloadReadError("x"), DecodeError)


class EncoderTests(unittest.TestCase):
    def test_encode_then_decode(self):
        root = {
            "Level": nbt.Compound(
                {
                    "xPos": nbt.Int(-4),
                    "Status": nbt.String("full"),
                    "Sections": nbt.NBTList([nbt.Compound({"Y": nbt.Byte(0)}), nbt.Compound({"Y": nbt.Byte(1)})]),
                    "Heights": nbt.LongArray([1, 2, 3]),
                    "Biomes": nbt.IntArray([]),
                    "Empty": nbt.NBTList([]),
                    "Scale": nbt.Double(0.5),
                }
            )
        }
        self.assertEqual(nbt.loads(nbt.dumps(root)), root)

    def test_dump_to_stream(self):
        buf = io.BytesIO()
        nbt.dump({"a": nbt.Short(3)}, buf, name="named")
        self.assertEqual(buf.getvalue()[:8], b"\x0a\x00\x05named")
        self.assertEqual(nbt.loads(buf.getvalue()), {"a": nbt.Short(3)})

    def test_heterogeneous_list_rejected(self):
        with self.assertRaises(ValueError):
            nbt.dumps({"l": nbt.NBTList([nbt.Int(1), nbt.Long(2)])})

    def test_end_tag_not_allowed_in_compound(self):
        with self.assertRaises(ValueError):
            nbt.dumps({"x": nbt.ABSENT})


class StreamingDecompressionTests(unittest.TestCase):
    def setUp(self):
        self.root = {"Level": nbt.Compound({"xPos": nbt.Int(3), "Pad": nbt.IntArray(list(range(50000)))})}
        self.raw = nbt.dumps(self.root)

    def test_zlib_stream(self):
        with Codec(COMPRESSION_ZLIB).open(zlib.compress(self.raw)) as stream:
            self.assertEqual(nbt.load(stream), self.root)

    def test_gzip_stream(self):
        with Codec(COMPRESSION_GZIP).open(gzip.compress(self.raw)) as stream:
            self.assertEqual(nbt.load(stream), self.root)

    def test_truncated_zlib_stream(self):
        data = zlib.compress(self.raw)[: 200]
        with Codec(COMPRESSION_ZLIB).open(data) as stream:
            with self.assertRaises(PayloadReadError):
                nbt.load(stream)

    def test_garbage_zlib_stream(self):
        with Codec(COMPRESSION_ZLIB).open(b"definitely not deflate data") as stream:
            with self.assertRaises(PayloadReadError):
                nbt.load(stream)

    def test_garbage_gzip_stream(self):
        with Codec(COMPRESSION_GZIP).open(b"definitely not gzip data") as stream:
            with self.assertRaises(PayloadReadError):
                nbt.load(stream)


if __name__ == "__main__":
    unittest.main()
