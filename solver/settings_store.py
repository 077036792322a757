import configparser
from pathlib import Path

SETTINGS_PATH = Path(__file__).with_name("settings.ini")
SECTION = "search"

DEFAULT_SETTINGS = {
    "max_choice_points": "1000000",
    "workers": "1",
    "jsonl": "",
}


def _sanitize(settings):
    data = dict(DEFAULT_SETTINGS)
    data.update({k: v for k, v in settings.items() if k in DEFAULT_SETTINGS})

    try:
        cap = int(str(data["max_choice_points"]).replace("_", "").strip())
    except Exception:
        cap = int(DEFAULT_SETTINGS["max_choice_points"])
    if cap < 0:
        cap = int(DEFAULT_SETTINGS["max_choice_points"])
    data["max_choice_points"] = str(cap)

    try:
        workers = int(data["workers"])
    except Exception:
        workers = int(DEFAULT_SETTINGS["workers"])
    if workers < 1:
        workers = 1
    data["workers"] = str(workers)

    data["jsonl"] = str(data["jsonl"] or "").strip()
    return data


def load_settings(path=None):
    path = Path(path) if path is not None else SETTINGS_PATH
    parser = configparser.ConfigParser()
    if not path.exists():
        return dict(DEFAULT_SETTINGS)
    try:
        parser.read(path, encoding="utf-8")
    except Exception:
        return dict(DEFAULT_SETTINGS)
    if SECTION not in parser:
        return dict(DEFAULT_SETTINGS)
    raw = {key: parser[SECTION].get(key, default) for key, default in DEFAULT_SETTINGS.items()}
    return _sanitize(raw)


def save_settings(settings, path=None):
    path = Path(path) if path is not None else SETTINGS_PATH
    parser = configparser.ConfigParser()
    parser[SECTION] = _sanitize(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        parser.write(f)
