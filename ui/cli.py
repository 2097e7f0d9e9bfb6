from __future__ import annotations

from hp_driver_patcher.main import main as core_main


def main(argv: list[str] | None = None) -> int:
    # Thin wrapper so `python ui/cli.py` and the console script share one entrypoint.
    return core_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
