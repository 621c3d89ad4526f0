from __future__ import annotations

from dataclasses import dataclass, field
from PyQt6.QtCore import QSettings

from region_ocr_prep.pipeline import Connectivity, PipelineConfig, PolarityPolicy

_ORG = "RegionOcrPrep"
_APP = "RegionOcrPrep"


def _as_bool(value) -> bool:
    return str(value).lower() in ("true", "1", "yes")


@dataclass
class AppSettings:
    screen_region: str = "(0,1,0,1)"  # (x0,x1,y0,y1) fractions of the screen
    language: str = "eng"
    hotkey: str = "Ctrl+Alt+T"  # Qt-style
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    def save(self, settings: QSettings | None = None) -> None:
        s = settings or QSettings(_ORG, _APP)
        s.setValue("screen_region", self.screen_region)
        s.setValue("language", self.language)
        s.setValue("hotkey", self.hotkey)

        p = self.pipeline
        s.beginGroup("pipeline")
        s.setValue("connectivity", int(p.connectivity))
        s.setValue("size_lower", p.size_lower)
        s.setValue("size_upper", p.size_upper)
        s.setValue("intensity_margin", p.intensity_margin)
        s.setValue("color_tolerance", p.color_tolerance)
        s.setValue("dominant_count", p.dominant_count)
        s.setValue("polarity_policy", p.polarity_policy.value)
        s.setValue("normalize_brightness", p.normalize_brightness)
        s.setValue("contrast", p.contrast)
        s.setValue("scale_factor", p.scale_factor)
        s.endGroup()

    @classmethod
    def load(cls, settings: QSettings | None = None) -> AppSettings:
        """Read settings, falling back to defaults for missing keys.

        Raises ValueError when stored pipeline values are inconsistent.
        """
        s = settings or QSettings(_ORG, _APP)
        d = PipelineConfig()

        s.beginGroup("pipeline")
        pipeline = PipelineConfig(
            connectivity=Connectivity(int(s.value("connectivity", int(d.connectivity)))),
            size_lower=int(s.value("size_lower", d.size_lower)),
            size_upper=int(s.value("size_upper", d.size_upper)),
            intensity_margin=int(s.value("intensity_margin", d.intensity_margin)),
            color_tolerance=int(s.value("color_tolerance", d.color_tolerance)),
            dominant_count=int(s.value("dominant_count", d.dominant_count)),
            polarity_policy=PolarityPolicy(str(s.value("polarity_policy", d.polarity_policy.value))),
            normalize_brightness=_as_bool(s.value("normalize_brightness", d.normalize_brightness)),
            contrast=float(s.value("contrast", d.contrast)),
            scale_factor=float(s.value("scale_factor", d.scale_factor)),
        )
        s.endGroup()

        return cls(
            screen_region=str(s.value("screen_region", "(0,1,0,1)")),
            language=str(s.value("language", "eng")),
            hotkey=str(s.value("hotkey", "Ctrl+Alt+T")),
            pipeline=pipeline,
        )
