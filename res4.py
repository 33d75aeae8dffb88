from construct import *
import sys
import io
import os
import typing
import zipfile

CODING = "latin-1"

RES4_MAGIC = 0x52455334 # 'RES4'
SND2_KIND = 0x534E4432 # 'SND2'

NAME_ENTRY_SIZE = 88

header_data = Struct(
    "magic" / Const(RES4_MAGIC, Int32ul),
    "type_table_start" / Hex(Int32ul),
    "type_table_end" / Hex(Int32ul),
    "name_table_size" / Hex(Int32ul),
)

type_entry_data = Struct(
    "kind" / Hex(Int32ul),
    "data_offset" / Hex(Int32ul),
)

name_entry_data = Struct(
    "index" / Int32ul,
    "name" / Bytes(64),
    "format_tag" / Int32ul,
    "size" / Hex(Int32ul),
    "sample_rate" / Int32ul,
    "bit_depth" / Int32ul,
    "channels" / Int32ul,
)

class RES4Error(Exception):
    pass

class FormatError(RES4Error):
    pass

class ConsistencyError(RES4Error):
    pass

class TypeEntry(typing.NamedTuple):
    kind: int
    data_offset: int

class NameEntry(typing.NamedTuple):
    index: int
    name: str
    format_tag: int # 0 on wav, 9 on mp3?
    size: int
    sample_rate: int # 44100 on wav, 0 on mp3?
    bit_depth: int # 8 or 16 on wav, 0 on mp3?
    channels: int # 1 or 2 on wav, 0 on mp3?

def _parse(con: Construct, file, what: str):
    try:
        return con.parse_stream(file)

    except StreamError as e:
        raise IOError(f"truncated {what} at 0x{file.tell():08x}: {e}") from e

def decode_name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode(CODING)

def get_file_size(file) -> int:
    temp = file.tell()
    size = file.seek(0, io.SEEK_END)
    file.seek(temp)
    return size

def read_header(file):
    file_size = get_file_size(file)
    file.seek(0)

    try:
        header = _parse(header_data, file, "header")

    except ConstError as e:
        raise FormatError(f"not a RES4 archive: {e}") from e

    if header.type_table_end < header.type_table_start:
        raise FormatError(f"type table ends before it starts: 0x{header.type_table_start:08x} > 0x{header.type_table_end:08x}")

    if file_size != header.type_table_end + header.name_table_size:
        raise FormatError(f"file size 0x{file_size:08x} does not match type table end 0x{header.type_table_end:08x} + name table size 0x{header.name_table_size:08x}")

    file.seek(header.type_table_start)
    return header

def read_type_table(file, header, file_size: int) -> typing.List[TypeEntry]:
    num_files = _parse(Int32ul, file, "type table")

    if header.name_table_size != num_files * NAME_ENTRY_SIZE:
        raise FormatError(f"name table size 0x{header.name_table_size:08x} does not fit {num_files} entries")

    types = [TypeEntry(t.kind, t.data_offset) for t in _parse(Array(num_files, type_entry_data), file, "type table")]

    for i, t in enumerate(types):
        if t.kind != SND2_KIND:
            raise FormatError(f"entry {i}: unknown kind 0x{t.kind:08x}")

        if t.data_offset >= file_size:
            raise FormatError(f"entry {i}: data offset 0x{t.data_offset:08x} past end of file 0x{file_size:08x}")

    if file.tell() != header.type_table_end:
        raise FormatError(f"type table ends at 0x{file.tell():08x}, header says 0x{header.type_table_end:08x}")

    return types

def read_name_entry(file) -> NameEntry:
    n = _parse(name_entry_data, file, "name entry")
    return NameEntry(n.index, decode_name(n.name), n.format_tag, n.size, n.sample_rate, n.bit_depth, n.channels)

def read_name_table(file, num_files: int) -> typing.List[NameEntry]:
    return [read_name_entry(file) for _ in range(num_files)]

def warn(msg: str):
    print(msg, file=sys.stderr)

class DirectoryWriter():
    def __init__(self, path: str):
        self.path = path
        os.makedirs(path, exist_ok=True)

    def write(self, name: str, data: bytes):
        with open(os.path.join(self.path, name), "wb") as f:
            f.write(data)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

class ZipWriter():
    def __init__(self, path: str):
        self.path = path
        self.files = {}

    def write(self, name: str, data: bytes):
        self.files[name] = data

    def close(self):
        with zipfile.ZipFile(self.path, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for name, data in self.files.items():
                zf.writestr(name, data)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

def open_writer(dest: str):
    if dest.lower().endswith(".zip"):
        return ZipWriter(dest)

    return DirectoryWriter(dest)

class RES4():
    def __init__(self, file):
        self.file = file
        self.header = read_header(self.file)
        self.file_size = self.header.type_table_end + self.header.name_table_size
        self.types = read_type_table(self.file, self.header, self.file_size)
        self.names = read_name_table(self.file, len(self.types))

    def __len__(self):
        return len(self.types)

    def find(self, name: str) -> int:
        for i, n in enumerate(self.names):
            if n.name == name:
                return i

        raise FileNotFoundError(name)

    def read(self, index: int) -> typing.Tuple[NameEntry, typing.Optional[bytes]]:
        """
        Reads the inline descriptor and payload of entry `index`.

        The payload is None when the entry turns out to be zero bytes, that is,
        when the next entry's descriptor starts right after this one's.
        """
        self.file.seek(self.types[index].data_offset)
        entry = read_name_entry(self.file)

        if index < len(self.types) - 1 and self.file.tell() == self.types[index + 1].data_offset:
            return entry, None

        if entry != self.names[index]:
            raise ConsistencyError(f"entry {index}: inline descriptor {entry} does not match name table {self.names[index]}")

        data = self.file.read(entry.size)
        if len(data) != entry.size:
            raise IOError(f"{entry.name}: expected 0x{entry.size:08x} bytes, got 0x{len(data):08x}")

        return entry, data

    def extract(self, writer, verbose: bool=True) -> typing.List[str]:
        written = []

        for i in range(len(self.types)):
            entry, data = self.read(i)

            if verbose:
                print(f"[{i}/{len(self.types)}] extracting {entry.name}")

            if data is None:
                warn(f"{entry.name}: error extracting, seems this file is actually zero bytes?")
                continue

            if entry.name.lower().endswith(".wav") and data[:4] != b"RIFF":
                warn(f"{entry.name}: wav file has bad RIFF header?")

            writer.write(entry.name, data)
            written.append(entry.name)

        return written

    def ls(self):
        return [(i, t.data_offset, n) for i, (t, n) in enumerate(zip(self.types, self.names))]

    def check(self) -> typing.List[str]:
        problems = []

        for i, n in enumerate(self.names):
            is_wav = n.name.lower().endswith(".wav")
            is_mp3 = n.name.lower().endswith(".mp3")

            if n.index != i:
                problems.append(f"[{n.name}] index {n.index} at position {i}")

            if n.format_tag == 0:
                if not is_wav: problems.append(f"[{n.name}] format tag 0 on a non-wav file")
            elif n.format_tag == 9:
                if not is_mp3: problems.append(f"[{n.name}] format tag 9 on a non-mp3 file")
            else:
                problems.append(f"[{n.name}] unknown format tag {n.format_tag}")

            if n.bit_depth in [8, 16]:
                if not is_wav: problems.append(f"[{n.name}] bit depth {n.bit_depth} on a non-wav file")
            elif n.bit_depth == 0:
                if not is_mp3: problems.append(f"[{n.name}] bit depth 0 on a non-mp3 file")
            else:
                problems.append(f"[{n.name}] unknown bit depth {n.bit_depth}")

            if n.channels in [1, 2]:
                if not is_wav: problems.append(f"[{n.name}] channel count {n.channels} on a non-wav file")
            elif n.channels == 0:
                if not is_mp3: problems.append(f"[{n.name}] channel count 0 on a non-mp3 file")
            else:
                problems.append(f"[{n.name}] unknown channel count {n.channels}")

        for p in problems:
            warn(p)

        return problems

    def info(self):
        print(f"file_size: 0x{self.file_size:08x}")
        print(f"type_table_start: 0x{self.header.type_table_start:08x}")
        print(f"type_table_end: 0x{self.header.type_table_end:08x}")
        print(f"type_table_size: 0x{self.header.type_table_end - self.header.type_table_start:08x}")
        print(f"name_table_size: 0x{self.header.name_table_size:08x}")
        print(f"files: {len(self.types)}")
