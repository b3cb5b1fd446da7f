"""
client — Hover Prefetch + Blog Cache
=====================================
asyncio/httpx rendition of the site's link preloading: pages are fetched
speculatively on hover, blog metadata and content are cached per slug with
one in-flight request per resource.
"""
