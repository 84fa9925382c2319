"""
fanharvest – collect download URLs from fan-subscription platforms.

Supports:
  • Pixiv Fanbox and Kemono creators (paginated post listings)
  • Individual posts by ID or URL
  • Attachments, images, cover images and third-party file-host links
  • Bounded concurrent requests with per-item error capture
"""
