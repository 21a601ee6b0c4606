from typing import Optional


def full_image_url(url: Optional[str], base_url: str, cdn_query: Optional[str] = None) -> Optional[str]:
    """Turn an image reference from the API into an absolute https URL.

    - Cloudinary URLs are forced to https and given the CDN transform query
    - Other http URLs are upgraded to https
    - Relative paths (e.g. uploads/p.png) are joined onto the API base URL
    """
    if not url or not isinstance(url, str):
        return None
    url = url.strip()
    if not url:
        return None

    if "cloudinary.com" in url:
        secure = url.replace("http://", "https://", 1)
        if not cdn_query or "?" in secure:
            return secure
        return f"{secure}?{cdn_query}"

    if url.startswith("http://"):
        return url.replace("http://", "https://", 1)
    if url.startswith("https://"):
        return url

    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"
