"""
Канонизация URL: ключ дедупликации для страниц, организаций и очереди скрейпинга.

normalize_url и extract_hostname чистые и идемпотентные:
f(f(x)) == f(x). На невалидный ввод возвращают None, исключений не бросают.
"""

import re
from urllib.parse import urlsplit, urlunsplit

# Трекинговые параметры, которые не влияют на содержимое страницы
_TRACKING_PARAMS = frozenset({"ref", "source", "fbclid", "gclid", "msclkid"})
_TRACKING_PREFIXES = ("utm_", "mc_")

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_RE = re.compile(r"^[a-z0-9_.-]+$")


def _strip_www(host: str) -> str:
    # Повторяем, пока после www. остаётся полноценный домен (www.www.a.com -> a.com)
    while host.startswith("www.") and "." in host[4:]:
        host = host[4:]
    return host


def _canonical_host(host: str) -> str | None:
    """
    Хост в нижнем регистре, в ASCII-форме (IDN -> punycode), без www.
    None, если хост пустой, без точки или не проходит IDNA.
    """
    host = host.strip().lower().rstrip(".")
    try:
        host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return None
    host = _strip_www(host)
    if not host or "." not in host or not _HOST_RE.match(host):
        return None
    return host


def _is_tracking_param(key: str) -> bool:
    k = key.lower()
    return k in _TRACKING_PARAMS or k.startswith(_TRACKING_PREFIXES)


def _filter_query(query: str) -> str:
    """Удаляет трекинговые параметры и пустые куски, сохраняя исходное кодирование."""
    kept = []
    for piece in query.split("&"):
        if not piece or piece == "=":
            continue
        key = piece.split("=", 1)[0]
        if not key or _is_tracking_param(key):
            continue
        kept.append(piece)
    return "&".join(kept)


def normalize_url(raw_url: str | None) -> str | None:
    """
    Приводит URL к канонической форме:
    - без фрагмента;
    - схема https (http поднимается до https, другие схемы невалидны);
    - хост в нижнем регистре, в punycode для IDN, без www. и без userinfo;
    - без завершающего слеша (корень "/" превращается в пустой путь);
    - без трекинговых query-параметров (utm_*, mc_*, ref, source, fbclid, gclid, msclkid).
    Путь и значения query сохраняют регистр.
    """
    s = (raw_url or "").strip()
    if not s:
        return None

    if s.startswith("//"):
        s = f"https:{s}"
    elif not _SCHEME_RE.match(s):
        s = f"https://{s}"

    try:
        parts = urlsplit(s)
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if parts.scheme.lower() not in ("http", "https"):
        return None
    if not hostname:
        return None

    host = _canonical_host(hostname)
    if host is None:
        return None
    netloc = host if port is None else f"{host}:{port}"

    path = parts.path.rstrip("/")
    query = _filter_query(parts.query)

    return urlunsplit(("https", netloc, path, query, ""))


def extract_hostname(raw_url: str | None) -> str | None:
    """
    Извлекает хост из URL или строки домена.
    - Принимает URL (https://app.example.com/path) или домен (example.com)
    - Убирает схему, порт и www.
    - IDN приводится к punycode (münchen.de -> xn--mnchen-3ya.de)
    - Поддомены сохраняются (app.example.com не сворачивается в example.com)
    - Возвращает None если пусто/невалидно
    """
    s = (raw_url or "").strip()
    if not s:
        return None

    if "://" in s or s.startswith("//"):
        try:
            host = urlsplit(s if "://" in s else f"https:{s}").hostname or ""
        except ValueError:
            return None
    else:
        host = s.split("/")[0].split("?")[0].split("#")[0]
        # Убираем userinfo и порт
        host = host.rsplit("@", 1)[-1]
        if ":" in host:
            host = host.split(":")[0]

    return _canonical_host(host)
