"""
Minimal UCI engine used by the engine tests.

``go depth N`` reports ``score cp N*100`` and plays e2e4. A depth 1 search
takes SLOW_SEARCH seconds unless it is interrupted by ``stop``.
"""

import sys
import threading

SLOW_SEARCH = 0.3

_out_lock = threading.Lock()


def send(*lines: str) -> None:
    with _out_lock:
        for line in lines:
            sys.stdout.write(line + "\n")
        sys.stdout.flush()


def search(depth: int, stopped: threading.Event) -> None:
    stopped.wait(SLOW_SEARCH if depth == 1 else 0)
    send(f"info depth {depth} score cp {depth * 100} pv e2e4", "bestmove e2e4")


def main() -> None:
    worker = None
    stopped = threading.Event()

    for raw in sys.stdin:
        tokens = raw.split()
        if not tokens:
            continue
        command = tokens[0]

        if command == "uci":
            send(
                "id name Scripted Engine",
                "id author chessreview tests",
                "option name Threads type spin default 1 min 1 max 8",
                "option name Hash type spin default 16 min 1 max 1024",
                "uciok",
            )
        elif command == "isready":
            send("readyok")
        elif command == "go":
            if worker is not None:
                worker.join()
            stopped = threading.Event()
            depth = int(tokens[tokens.index("depth") + 1]) if "depth" in tokens else 1
            worker = threading.Thread(target=search, args=(depth, stopped))
            worker.start()
        elif command == "stop":
            stopped.set()
        elif command == "quit":
            break

    stopped.set()
    if worker is not None:
        worker.join()


if __name__ == "__main__":
    main()
