"""
Request payload helpers shared by the evidence services
"""

from services.errors import ValidationError


def parse_id(value, field: str, required: bool = False):
    """Integer id from a JSON value; None stays None unless the field is required"""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id")


def parse_id_list(values, field: str = "evidenceIds") -> list:
    if not isinstance(values, list) or not values:
        raise ValidationError(f"{field} must be a non-empty array")
    return list(values)


def parse_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be a boolean")


def clean_files(files) -> list:
    """Normalise the ``files`` attachment list to ``{name, url, mimeType, size}`` dicts"""
    if files is None:
        return []
    if not isinstance(files, list):
        raise ValidationError("files must be an array")
    cleaned = []
    for item in files:
        if not isinstance(item, dict) or not isinstance(item.get("url"), str) or not item["url"]:
            raise ValidationError("Each file needs a url")
        size = item.get("size")
        cleaned.append({
            "name": str(item.get("name") or item["url"].rsplit("/", 1)[-1]),
            "url": item["url"],
            "mimeType": item.get("mimeType"),
            "size": size if isinstance(size, int) and not isinstance(size, bool) else None,
        })
    return cleaned


def clean_video_links(links) -> list:
    if links is None:
        return []
    if not isinstance(links, list):
        raise ValidationError("videoLinks must be an array")
    cleaned = []
    for link in links:
        if not isinstance(link, str) or not link.strip().lower().startswith(("http://", "https://")):
            raise ValidationError("Video links must be http(s) URLs")
        cleaned.append(link.strip())
    return cleaned
