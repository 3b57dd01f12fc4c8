"""Stand-in for the Codex CLI used by the test suite.

Invoked as ``python fake_agent.py <prompt>``; the prompt selects the
behaviour, e.g. ``echo hello``, ``exit 3``, ``sleep 30``.
"""

import os
import sys
import time


def main(prompt: str) -> int:
    command, _, arg = prompt.partition(" ")

    if command == "echo":
        print(arg)
        return 0
    if command == "lines":
        for index in range(int(arg)):
            print(f"line {index}")
        return 0
    if command == "mixed":
        sys.stdout.write("out 1\n")
        sys.stdout.flush()
        sys.stderr.write("err 1\n")
        sys.stderr.flush()
        sys.stdout.write("out 2\n")
        return 0
    if command == "exit":
        sys.stderr.write("boom\n")
        return int(arg)
    if command == "partial":
        sys.stdout.write(arg)
        return 0
    if command == "crlf":
        sys.stdout.write("first\r\nsecond\r\n")
        return 0
    if command == "split":
        data = "héllo\n".encode("utf-8")
        sys.stdout.buffer.write(data[:2])
        sys.stdout.buffer.flush()
        time.sleep(0.05)
        sys.stdout.buffer.write(data[2:])
        return 0
    if command == "cwd":
        print(os.getcwd())
        return 0
    if command == "sleep":
        print("started", flush=True)
        time.sleep(float(arg))
        print("finished")
        return 0

    sys.stderr.write(f"unknown prompt: {prompt}\n")
    return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else ""))
