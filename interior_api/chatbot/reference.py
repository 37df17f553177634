"""Static reference tables shared by intent matching and reply text.

The keys are what the matcher looks for in visitor input and what gets
stored in collected data; the values are interpolated into replies. Built
once at import and exposed read-only so concurrent conversations can share
them without coordination.
"""

from __future__ import annotations

from types import MappingProxyType

DESIGN_STYLES: MappingProxyType[str, str] = MappingProxyType(
    {
        "modern": "Clean lines, minimal decoration, and a focus on function",
        "traditional": "Classic elegance with rich colors and ornate details",
        "contemporary": "Current trends with clean, sophisticated aesthetics",
        "minimalist": "Simple, uncluttered spaces with essential elements only",
        "industrial": "Raw materials, exposed elements, and urban aesthetics",
        "scandinavian": "Light, airy spaces with natural materials and functionality",
        "bohemian": "Eclectic, artistic, and free-spirited design",
        "coastal": "Relaxed, beach-inspired with light colors and natural textures",
        "farmhouse": "Rustic charm with modern comfort and vintage elements",
        "mid-century": "Retro style from the 1950s-60s with clean lines",
        "art-deco": "Luxurious, geometric patterns and bold colors",
        "other": "Custom or mixed style approach",
    }
)

BUDGET_BANDS: MappingProxyType[str, str] = MappingProxyType(
    {
        "under-10k": "Under $10,000",
        "10k-25k": "$10,000 - $25,000",
        "25k-50k": "$25,000 - $50,000",
        "50k-100k": "$50,000 - $100,000",
        "over-100k": "Over $100,000",
    }
)

TIMELINE_BANDS: MappingProxyType[str, str] = MappingProxyType(
    {
        "1-3-months": "1-3 months",
        "3-6-months": "3-6 months",
        "6-12-months": "6-12 months",
        "over-12-months": "Over 12 months",
    }
)

# Order matters: the first room found in the input wins.
ROOM_TYPES: tuple[str, ...] = (
    "living room",
    "bedroom",
    "kitchen",
    "bathroom",
    "dining room",
    "office",
    "basement",
    "outdoor",
)

PROJECT_TYPES: tuple[str, ...] = ("residential", "commercial", "renovation")

# Upper bounds (exclusive) for the numeric budget fallback.
BUDGET_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (10_000, "under-10k"),
    (25_000, "10k-25k"),
    (50_000, "25k-50k"),
    (100_000, "50k-100k"),
)
BUDGET_CEILING_BAND = "over-100k"

NEXT_STEPS: tuple[str, ...] = (
    "Our design team will review your requirements",
    "You'll receive a personalized proposal within 24 hours",
    "We'll schedule a consultation to discuss your project in detail",
)
