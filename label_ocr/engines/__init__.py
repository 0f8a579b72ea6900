"""
Recognition engines:
- base: common contract + image loading / encoding helpers
- tesseract: local Tesseract engine with a lazily built session
- openrouter: remote vision models (fast / structured / advanced tiers)
"""
