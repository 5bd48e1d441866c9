"""
Loopwright -- Built-in Presets
Curated effect chains that loop cleanly.

Each preset is a recipe: a named chain of effects with tuned parameters.
Unspecified parameters use the effect's config defaults.

Categories:
    Subtle      -- Gentle touches, barely-there motion
    Iridescent  -- Foil, prism and bloom looks
    Psychedelic -- Echoes, heavy flow, strong color separation
"""

from core.pipeline import EffectChain, EffectSettings
from effects import build_chain

BUILT_IN_PRESETS = [
    # =========================================================================
    # SUBTLE
    # =========================================================================
    {
        "name": "Soft Bloom",
        "description": "Gentle bloom with a subtle chromatic orbit.",
        "category": "Subtle",
        "effects": [
            {"name": "orbit_bloom", "params": {"orbit_radius": 2.0, "ripple_amplitude": 1.0,
                                               "bloom_intensity": 0.5, "vignette_strength": 0.2}},
        ],
        "tags": ["bloom", "soft", "glow"],
    },
    {
        "name": "Subtle Holo",
        "description": "Gentle holographic foil with soft shimmer.",
        "category": "Subtle",
        "effects": [
            {"name": "holofoil", "params": {"rainbow_strength": 0.4, "scratch_contrast": 0.2,
                                            "grain_strength": 0.03, "vignette_strength": 0.1}},
        ],
        "tags": ["holographic", "foil", "soft"],
    },
    {
        "name": "Subtle Flow",
        "description": "Slow liquid drift with minimal displacement.",
        "category": "Subtle",
        "effects": [
            {"name": "flow_field", "params": {"mode": "liquid", "flow_strength": 4.0,
                                              "turbulence": 0.2, "blend_strength": 0.6}},
        ],
        "tags": ["flow", "liquid", "soft"],
    },
    {
        "name": "Minimal Echo",
        "description": "Subtle recursive echoes with little distortion.",
        "category": "Subtle",
        "effects": [
            {"name": "void_echo", "params": {"echo_count": 3, "displacement_radius": 20.0,
                                             "chromatic_strength": 2.0, "tint_strength": 0.1}},
        ],
        "tags": ["echo", "soft"],
    },
    {
        "name": "Subtle Foil",
        "description": "Gentle lenticular foil with a soft groove shimmer.",
        "category": "Subtle",
        "effects": [
            {"name": "chrono_lenticular_foil", "params": {"intensity": 0.4, "hue_shift_deg": 10.0,
                                                          "displacement_px": 1.0}},
        ],
        "tags": ["foil", "lenticular", "soft"],
    },
    # =========================================================================
    # IRIDESCENT
    # =========================================================================
    {
        "name": "Premium Holo",
        "description": "Strong iridescence with rotating gratings and a gentle pulse.",
        "category": "Iridescent",
        "effects": [
            {"name": "holofoil", "params": {"animation_mode": "pulse", "rainbow_strength": 1.0,
                                            "grating_order_count": 5, "grating_scale": 2.5}},
        ],
        "tags": ["holographic", "foil", "prismatic"],
    },
    {
        "name": "Rainbow Foil",
        "description": "Vibrant rainbow foil with a radial ripple and a bloom pass.",
        "category": "Iridescent",
        "effects": [
            {"name": "holofoil", "params": {"animation_mode": "ripple", "ripple_strength": 0.8,
                                            "saturation": 1.0, "rainbow_strength": 1.0}},
            {"name": "orbit_bloom", "params": {"orbit_enabled": False, "ripple_enabled": False,
                                               "bloom_threshold": 0.6, "bloom_intensity": 0.6}},
        ],
        "tags": ["holographic", "rainbow", "bloom"],
    },
    {
        "name": "Ethereal Glow",
        "description": "Balanced bloom with chromatic orbit and a soft prismatic split.",
        "category": "Iridescent",
        "effects": [
            {"name": "chromatic_aberration", "params": {"displacement_mode": "radial",
                                                        "max_displacement": 6.0, "mix": 0.7}},
            {"name": "orbit_bloom", "params": {"bloom_intensity": 1.2, "bloom_pulse_amplitude": 0.3}},
        ],
        "tags": ["bloom", "chromatic", "glow"],
    },
    {
        "name": "Oil Slick",
        "description": "Thick, viscous liquid with an oil-slick rainbow sheen.",
        "category": "Iridescent",
        "effects": [
            {"name": "liquid_chromatic", "params": {"viscosity": 0.9, "iridescence_intensity": 0.9,
                                                    "hue_shift_range": 150.0, "chromatic_separation": 6.0}},
        ],
        "tags": ["liquid", "iridescent", "rainbow"],
    },
    {
        "name": "Holographic Card",
        "description": "Trading card hologram with parallax depth and spectral edges.",
        "category": "Iridescent",
        "effects": [
            {"name": "holographic_prism", "params": {"animation_mode": "combined", "shimmer_intensity": 0.5,
                                                     "glow_intensity": 0.4, "parallax_strength": 6.0}},
        ],
        "tags": ["holographic", "prism", "card"],
    },
    {
        "name": "Rainbow Scan",
        "description": "Keyframed spectral sweep with rainbow caustics.",
        "category": "Iridescent",
        "effects": [
            {"name": "spectral_overwatch", "params": {"key_frames": (0, 40), "glitch_frame_count": (12, 20),
                                                      "caustic_strength": 1.5}},
        ],
        "tags": ["spectral", "sweep", "rainbow"],
    },
    # =========================================================================
    # PSYCHEDELIC
    # =========================================================================
    {
        "name": "Psychedelic Portal",
        "description": "Deep recursive echoes with intense chromatic separation.",
        "category": "Psychedelic",
        "effects": [
            {"name": "void_echo", "params": {"echo_count": 9, "echo_decay": 0.85,
                                             "chromatic_strength": 18.0, "blend_mode": "add",
                                             "rotation_speed": 1.0}},
        ],
        "tags": ["echo", "chromatic", "intense"],
    },
    {
        "name": "Vortex Drain",
        "description": "Orbiting vortices pull the frame into slow spirals.",
        "category": "Psychedelic",
        "effects": [
            {"name": "flow_field", "params": {"mode": "vortex", "flow_strength": 30.0,
                                              "swirls": 4, "vortex_intensity": 0.8}},
        ],
        "tags": ["flow", "vortex", "intense"],
    },
    {
        "name": "Signal Tear",
        "description": "Scanline channel tearing over plasma flow.",
        "category": "Psychedelic",
        "effects": [
            {"name": "flow_field", "params": {"mode": "plasma", "flow_strength": 10.0}},
            {"name": "chromatic_aberration", "params": {"displacement_mode": "scanline",
                                                        "max_displacement": 24.0,
                                                        "scanline_intensity": 0.9,
                                                        "noise_amount": 0.1}},
        ],
        "tags": ["glitch", "chromatic", "plasma"],
    },
    {
        "name": "Braided Light",
        "description": "Radial flux weave with strong channel shifts and a hue swing.",
        "category": "Psychedelic",
        "effects": [
            {"name": "flux_weave", "params": {"wave_direction": "radial", "phase_shift_strength": 40.0,
                                              "hue_rotation": 60.0, "braid_count": 5}},
        ],
        "tags": ["weave", "chromatic", "intense"],
    },
]


def get_preset(name: str) -> dict | None:
    """Look up a preset by name (case-insensitive)."""
    name_lower = name.lower()
    for preset in BUILT_IN_PRESETS:
        if preset["name"].lower() == name_lower:
            return preset
    return None


def get_presets_by_category(category: str) -> list[dict]:
    """Get all presets in a category."""
    return [p for p in BUILT_IN_PRESETS if p["category"].lower() == category.lower()]


def get_presets_by_tag(tag: str) -> list[dict]:
    """Get all presets that have a given tag."""
    tag_lower = tag.lower()
    return [p for p in BUILT_IN_PRESETS if tag_lower in [t.lower() for t in p["tags"]]]


def list_preset_names() -> list[str]:
    """Return all preset names."""
    return [p["name"] for p in BUILT_IN_PRESETS]


def list_categories() -> list[str]:
    """Return unique categories."""
    return sorted(set(p["category"] for p in BUILT_IN_PRESETS))


def build_preset_chain(name: str, settings: EffectSettings | None = None) -> EffectChain:
    """Instantiate a preset as an EffectChain.

    Raises ValueError for unknown presets or effects.
    """
    preset = get_preset(name)
    if preset is None:
        raise ValueError(f"Unknown preset: {name}. Available: {', '.join(list_preset_names())}")
    return build_chain(preset["effects"], settings)
