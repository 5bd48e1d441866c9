"""
Loopwright — Effects Registry
Immutable registry of seamless-loop effects with a uniform interface.

Every effect module provides:
    Config                              frozen dataclass, clamps on construction
    precompute(config, settings)        -> immutable data, built once
    invoke(data, rgba, ctx, pool)       -> fresh (H, W, 4) uint8 frame
"""

from types import MappingProxyType

import numpy as np

from core.blend import blend_normal, to_uint8
from core.pipeline import EffectChain, EffectDescriptor, EffectInstance, EffectSettings, to_rgba
from core.pool import BufferPool
from core.safety import validate_chain_depth, validate_frame
from effects import (
    chromatic_aberration,
    chrono_lenticular_foil,
    flow_field,
    flux_weave,
    holofoil,
    holographic_prism,
    liquid_chromatic,
    orbit_bloom,
    spectral_overwatch,
    void_echo,
)


def _descriptor(name, module, config_cls, **meta):
    return EffectDescriptor(
        name=name,
        config_cls=config_cls,
        precompute=module.precompute,
        invoke=module.invoke,
        **meta,
    )


EFFECTS = MappingProxyType({
    "holofoil": _descriptor(
        "holofoil", holofoil, holofoil.HoloFoilConfig,
        category="final",
        display_name="Holo Foil",
        description="Iridescent holographic foil with prismatic diffraction and shimmer",
        tags=("final", "holographic", "foil", "prismatic", "animated"),
    ),
    "orbit_bloom": _descriptor(
        "orbit_bloom", orbit_bloom, orbit_bloom.OrbitBloomConfig,
        category="final",
        display_name="Orbit Bloom",
        description="Chromatic orbit, polar ripple, pulsing bloom and vignette",
        tags=("final", "bloom", "chromatic", "animated"),
    ),
    "void_echo": _descriptor(
        "void_echo", void_echo, void_echo.VoidEchoConfig,
        category="final",
        display_name="Void Echo",
        description="Recursive chromatic echoes with feedback accumulation",
        tags=("final", "recursive", "chromatic", "psychedelic", "animated"),
    ),
    "flow_field": _descriptor(
        "flow_field", flow_field, flow_field.FlowFieldConfig,
        category="distortion",
        display_name="Flow Field",
        description="Noise and vortex driven displacement that loops through the sequence",
        tags=("distortion", "flow", "liquid", "vortex", "animated"),
    ),
    "chromatic_aberration": _descriptor(
        "chromatic_aberration", chromatic_aberration,
        chromatic_aberration.ChromaticAberrationConfig,
        category="final",
        display_name="Chromatic Aberration",
        description="RGB channel separation with looping displacement modes",
        tags=("final", "glitch", "chromatic", "animated"),
    ),
    "flux_weave": _descriptor(
        "flux_weave", flux_weave, flux_weave.FluxWeaveConfig,
        category="final",
        display_name="Flux Weave",
        description="Interfering waves braid the image into flowing, color-shifted threads",
        tags=("final", "wave", "braid", "chromatic", "animated"),
    ),
    "liquid_chromatic": _descriptor(
        "liquid_chromatic", liquid_chromatic, liquid_chromatic.LiquidChromaticConfig,
        category="secondary",
        display_name="Liquid Chromatic",
        description="Oil-on-water flow with trailing RGB channels and iridescent sheen",
        tags=("secondary", "liquid", "chromatic", "iridescent", "animated"),
    ),
    "chrono_lenticular_foil": _descriptor(
        "chrono_lenticular_foil", chrono_lenticular_foil,
        chrono_lenticular_foil.ChronoLenticularFoilConfig,
        category="secondary",
        display_name="Chrono Lenticular Foil",
        description="Iridescent micro-groove interference shimmer with spectral dispersion",
        tags=("secondary", "foil", "holographic", "iridescent", "interference", "animated"),
    ),
    "holographic_prism": _descriptor(
        "holographic_prism", holographic_prism, holographic_prism.HolographicPrismConfig,
        category="secondary",
        display_name="Holographic Prism",
        description="Chromatic dispersion, depth parallax and iridescent shimmer on a layer",
        tags=("secondary", "holographic", "prism", "chromatic", "iridescent"),
    ),
    "spectral_overwatch": _descriptor(
        "spectral_overwatch", spectral_overwatch, spectral_overwatch.SpectralOverwatchConfig,
        category="keyframe",
        display_name="Spectral Overwatch",
        description="Keyframed spectral sweep with prismatic caustics, looping within each run",
        tags=("keyframe", "spectral", "caustic", "sweep", "animated"),
    ),
})

CATEGORIES = {
    "final": "Final image effects (post-process over the composed frame)",
    "distortion": "Field-driven displacement",
    "secondary": "Layer treatments that restyle a single layer in place",
    "keyframe": "Effects that fire in short runs starting at key frames",
}


def get_effect(name: str) -> EffectDescriptor:
    """Look up an effect descriptor by name.

    Raises ValueError if the effect doesn't exist.
    """
    if name not in EFFECTS:
        available = ", ".join(sorted(EFFECTS.keys()))
        raise ValueError(f"Unknown effect: {name}. Available: {available}")
    return EFFECTS[name]


def list_effects(category: str = None) -> list[dict]:
    """List all available effects with descriptions and default params.

    Args:
        category: Optional filter — only return effects in this category.
    """
    return [
        desc.to_dict() for desc in EFFECTS.values()
        if not category or desc.category == category
    ]


def list_categories() -> list[str]:
    return list(CATEGORIES.keys())


def search_effects(query: str, max_query_len: int = 200) -> list[dict]:
    """Search effects by name, description or tag substring."""
    if len(query) > max_query_len:
        raise ValueError(f"Search query too long (max {max_query_len} chars)")
    q = query.lower()
    return [
        desc.to_dict() for name, desc in EFFECTS.items()
        if q in name or q in desc.description.lower() or any(q in t for t in desc.tags)
    ]


def create_effect(name: str, params: dict | None = None,
                  settings: EffectSettings | None = None) -> EffectInstance:
    """Build an invokable effect instance from a flat param dict."""
    desc = get_effect(name)
    return EffectInstance(desc, desc.config_cls.from_dict(params), settings)


def apply_effect(frame, effect_name: str, frame_index: int = 0, total_frames: int = 1,
                 pool: BufferPool | None = None, settings: EffectSettings | None = None,
                 **params):
    """Apply a named effect to one frame with given params.

    Returns a fresh (H, W, 4) uint8 frame.
    """
    inst = create_effect(effect_name, params, settings)
    return inst.invoke(frame, frame_index, total_frames, pool)


def build_chain(effects_list: list[dict], settings: EffectSettings | None = None) -> EffectChain:
    """[{"name": "holofoil", "params": {...}}, ...] -> EffectChain."""
    validate_chain_depth(effects_list)
    return EffectChain([
        create_effect(e["name"], e.get("params", {}), settings) for e in effects_list
    ])


def apply_chain(frame, effects_list: list[dict], frame_index: int = 0, total_frames: int = 1,
                pool: BufferPool | None = None):
    """Apply a chain of effects sequentially.

    effects_list: [{"name": "orbit_bloom", "params": {"bloom_intensity": 0.5}}, ...]

    An entry may carry "mix" (0.0-1.0): dry/wet blend of that step against
    its input. 1.0 = fully processed (default).
    """
    validate_chain_depth(effects_list)
    pool = pool if pool is not None else BufferPool()

    rendered = False
    for entry in effects_list:
        mix = max(0.0, min(1.0, float(entry.get("mix", 1.0))))
        if mix <= 0.0:
            continue
        inst = create_effect(entry["name"], entry.get("params", {}))
        wet = inst.invoke(frame, frame_index, total_frames, pool)
        if mix < 1.0:
            dry = inst.prepare(frame).astype(np.float32)
            wet = to_uint8(blend_normal(dry, wet.astype(np.float32), mix))
        frame = wet
        rendered = True
    if not rendered:
        validate_frame(frame)
        return to_rgba(frame).copy()
    return frame
