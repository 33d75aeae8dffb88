import sys
import os
import codecs
import shlex
import hexdump
import res4

def print_ls(s: res4.RES4):
    for i, offset, n in s.ls():
        print(f"{i:5} @0x{offset:08x} {n.name:<40} {n.size:10} {n.sample_rate:6} {n.bit_depth:3} {n.channels:2}")

def _lookup(s: res4.RES4, key: str) -> int:
    if key.isdigit():
        index = int(key)
        if index >= len(s): raise IndexError(f"no entry {index}, archive has {len(s)}")
        return index

    return s.find(key)

def _do_res4_shell(s: res4.RES4, source: str):
    print("RES4 shell")
    print(f"source file: {source}, {len(s)} files")

    while True:
        try:
            cmd = shlex.split(input("> "))

        except EOFError:
            break

        try:
            if len(cmd) > 0:
                if cmd[0] == "exit":
                    break

                elif cmd[0] == "ls":
                    print_ls(s)

                elif cmd[0] == "info":
                    s.info()

                elif cmd[0] == "check":
                    problems = s.check()
                    print(f"{len(problems)} problem(s)")

                elif cmd[0] == "dump":
                    if len(cmd) != 3:
                        print(f"{cmd[0]}: usage: {cmd[0]} name|index destination")

                    else:
                        entry, data = s.read(_lookup(s, cmd[1]))
                        if data is None:
                            print(f"{entry.name}: file is zero bytes")

                        else:
                            if os.path.split(cmd[2])[0]:
                                os.makedirs(os.path.split(cmd[2])[0], exist_ok=True)

                            with open(cmd[2], "wb") as f:
                                f.write(data)

                elif cmd[0] == "dumpall":
                    if len(cmd) != 2:
                        print(f"{cmd[0]}: usage: {cmd[0]} destination")

                    else:
                        with res4.open_writer(cmd[1]) as w:
                            s.extract(w)

                elif cmd[0] == "encoding":
                    if len(cmd) == 1:
                        print(res4.CODING)

                    elif len(cmd) > 2:
                        print(f"{cmd[0]}: too many arguments")

                    else:
                        old = res4.CODING
                        res4.CODING = codecs.lookup(cmd[1]).name

                        try:
                            s.file.seek(s.header.type_table_end)
                            s.names = res4.read_name_table(s.file, len(s))

                        except ValueError:
                            res4.CODING = old
                            raise

                elif cmd[0] in ["hd", "hexdump"]:
                    if len(cmd) == 1:
                        print(f"{cmd[0]}: usage: {cmd[0]} names|indexes...")

                    else:
                        for f in cmd[1:]:
                            entry, data = s.read(_lookup(s, f))
                            print(f"{entry.name}:")
                            hexdump.hexdump(data or b"")

                elif cmd[0] == "help":
                    print("ls (list all files in the archive)")
                    print("info (show the archive header)")
                    print("check (look for odd looking file descriptors)")
                    print("dump name|index destination (read a file and save)")
                    print("dumpall destination (extract every file to a folder or .zip)")
                    print("encoding [encoding] (set the encoding used to read filenames)")
                    print("hexdump names|indexes... (read files and output in hexdump)")
                    print("hd names|indexes... (short for hexdump)")
                    print("help (show this help message)")

                else:
                    print(f"{cmd[0]}: command not found")

        except Exception as e:
            print(f"{cmd[0]}: {type(e).__name__}: {e}")

def main(argv=None) -> int:
    argv = sys.argv if argv is None else argv

    if len(argv) < 2:
        print(f"usage: {argv[0]} archive [destination [encoding]]", file=sys.stderr)
        return 2

    try:
        if len(argv) > 3:
            res4.CODING = codecs.lookup(argv[3]).name

        with open(argv[1], "rb") as f:
            s = res4.RES4(f)

            if len(argv) == 2:
                _do_res4_shell(s, argv[1])

            else:
                s.info()
                with res4.open_writer(argv[2]) as w:
                    written = s.extract(w)

                print(f"extracted {len(written)} of {len(s)} files to {argv[2]}")

    except (res4.RES4Error, OSError, LookupError, ValueError) as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
