"""
Image URL generation.

Default ImageUrlGenerator: images are served through the image API route,
``/api/images/{id}?w=&h=&q=&f=``, optionally behind a CDN origin. Admin pages
always get the bare API path so editors see fresh images rather than a CDN
copy.
"""

from urllib.parse import urlencode

from directory_cache.pages.sources import ImageOptions, ImageRecord

ADMIN_PATH_PREFIX = "/admin"
IMAGE_API_PATH = "/api/images"


class ImageUrlBuilder:
    """
    Builds image URLs without touching the database or object storage.

    Args:
        cdn_url: CDN origin placed in front of the API path (IMAGE_CDN_URL)
    """

    def __init__(self, cdn_url: str | None = None):
        self._cdn_url = cdn_url.rstrip("/") if cdn_url else None

    async def generate(
        self,
        image: ImageRecord,
        options: ImageOptions | None = None,
        pathname: str | None = None,
    ) -> str:
        return self.build(image["id"], options, pathname)

    def build(self, image_id: str, options: ImageOptions | None = None, pathname: str | None = None) -> str:
        params: list[tuple[str, str]] = []
        if options is not None:
            if options.width:
                params.append(("w", str(options.width)))
            if options.height:
                params.append(("h", str(options.height)))
            if options.quality:
                params.append(("q", str(options.quality)))
            if options.format:
                params.append(("f", options.format))

        api_path = f"{IMAGE_API_PATH}/{image_id}"
        if params:
            api_path = f"{api_path}?{urlencode(params)}"

        is_admin_route = bool(pathname and pathname.startswith(ADMIN_PATH_PREFIX))
        if self._cdn_url and not is_admin_route:
            return f"{self._cdn_url}{api_path}"
        return api_path
