import json
import os
import time

from claude_statusline.app import StatuslineApp, bootstrap
from claude_statusline.models import CacheKind


def main() -> None:
    config, paths = bootstrap()
    app = StatuslineApp.create(config, paths)
    event = json.dumps({"session_id": "measure-render", "current_dir": os.getcwd()})

    t0 = time.perf_counter()
    line = app.render(event)
    first_elapsed = time.perf_counter() - t0
    print(f"first render: {first_elapsed:.3f}s")
    print(line)

    t1 = time.perf_counter()
    app.render(event)
    second_elapsed = time.perf_counter() - t1
    print(f"second render: {second_elapsed:.3f}s")

    for kind in CacheKind:
        entry = app.store.entry(kind)
        age = app.store.age(kind)
        held = "held" if entry.lock_path.exists() else "free"
        print(f"{kind.value}: age={age if age is None else round(age)}s lock={held} path={entry.path}")


if __name__ == "__main__":
    main()
