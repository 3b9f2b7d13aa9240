"""TikTok sign-in site backend."""
