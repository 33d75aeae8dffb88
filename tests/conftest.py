import struct
import pytest

RES4_MAGIC = 0x52455334
SND2_KIND = 0x534E4432

def pack_name(index, name, size, format_tag=0, sample_rate=44100, bit_depth=16, channels=2, pad=b""):
    raw = name.encode("latin-1") + b"\0" + pad
    return struct.pack("<I", index) + raw.ljust(64, b"\0")[:64] + struct.pack("<IIIII", format_tag, size, sample_rate, bit_depth, channels)

def build(files, tail=None, magic=RES4_MAGIC, kind=SND2_KIND):
    """
    Lays out an archive: header, one (descriptor, payload) block per file,
    type table, name table. `files` holds (name, payload, extra pack_name
    kwargs); `tail` overrides the name table records.
    """
    descs = [pack_name(**{"index": i, "name": name, "size": len(payload), **kw}) for i, (name, payload, kw) in enumerate(files)]

    body = b""
    offsets = []
    for d, (_, payload, _) in zip(descs, files):
        offsets.append(16 + len(body))
        body += d + payload

    type_table_start = 16 + len(body)
    type_table = struct.pack("<I", len(files)) + b"".join(struct.pack("<II", kind, o) for o in offsets)
    type_table_end = type_table_start + len(type_table)
    name_table = b"".join(tail if tail is not None else descs)

    header = struct.pack("<IIII", magic, type_table_start, type_table_end, len(name_table))
    return header + body + type_table + name_table

@pytest.fixture
def sample_files():
    return [
        ("boom.wav", b"RIFF\x24\x00\x00\x00WAVEfmt ", {}),
        ("music.mp3", b"ID3\x03\x00" + bytes(range(32)), {"format_tag": 9, "sample_rate": 0, "bit_depth": 0, "channels": 0}),
        ("click.wav", b"RIFF\x10\x00\x00\x00WAVE", {"bit_depth": 8, "channels": 1}),
    ]

@pytest.fixture
def archive_bytes(sample_files):
    return build(sample_files)

@pytest.fixture
def builder():
    return build

@pytest.fixture
def name_packer():
    return pack_name
