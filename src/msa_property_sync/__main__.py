import json

from .scheduler.cli import main


def _safe_main():
    try:
        code = main()
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    _safe_main()
