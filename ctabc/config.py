from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

import numpy as np
import pandas as pd
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ctabc.calibration.abc import ABCConfig
from ctabc.data.dataset import FrequencyDataset
from ctabc.errors import ConfigurationError


class DataConfig(BaseModel):
    counts: Optional[List[List[int]]] = None
    counts_csv: Optional[str] = None
    timestamps: List[int]
    durations: List[int]
    variants: Optional[List[str]] = None

    @model_validator(mode="after")
    def _one_source(self) -> "DataConfig":
        if (self.counts is None) == (self.counts_csv is None):
            raise ValueError("give exactly one of 'counts' or 'counts_csv'")
        return self

    def to_dataset(self, root: str | Path = ".") -> FrequencyDataset:
        if self.counts_csv is not None:
            frame = pd.read_csv(Path(root) / self.counts_csv)
            if self.variants:
                frame = frame[self.variants]
            return FrequencyDataset.from_frame(frame, self.timestamps, self.durations)
        return FrequencyDataset(
            counts=self.counts,
            timestamps=np.asarray(self.timestamps),
            durations=np.asarray(self.durations),
            variants=tuple(self.variants or ()),
        )


class ModelConfig(BaseModel):
    transmission: str = "frequency_bias"
    free_params: List[str] = ["mu", "b"]
    fixed_params: Dict[str, float] = {}
    s_mean: float = Field(0.5, gt=0.0, le=1.0)
    s_var: float = Field(0.0, ge=0.0)
    r_mean: float = Field(0.1, ge=0.0, le=1.0)
    r_var: float = Field(0.0, ge=0.0)
    alpha: float = Field(1.0, gt=0.0)


class PriorConfig(BaseModel):
    distribution: Literal["uniform", "loguniform", "normal", "beta"] = "uniform"
    params: Tuple[float, float]
    description: str = ""


class PredictiveConfig(BaseModel):
    n_draws: Optional[int] = Field(None, gt=0)
    level: float = Field(0.9, gt=0.0, lt=1.0)


class RunConfig(BaseModel):
    seed: int = 42
    data: DataConfig
    model: ModelConfig = ModelConfig()
    priors: Dict[str, PriorConfig] = Field(default_factory=dict)
    abc: ABCConfig = ABCConfig()
    predictive: PredictiveConfig = PredictiveConfig()

    @model_validator(mode="after")
    def _priors_cover_free_params(self) -> "RunConfig":
        if self.priors:
            missing = [p for p in self.model.free_params if p not in self.priors]
            if missing:
                raise ValueError(f"no prior for free parameters {missing}")
        return self


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path) -> RunConfig:
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc
    base_path = data.pop("base", None)
    if base_path:
        try:
            base_data = yaml.safe_load((path.parent / base_path).read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"cannot read base config {base_path}: {exc}") from exc
        data = deep_merge(base_data, data)
    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def dump_config(cfg: RunConfig, path: str | Path) -> None:
    path = Path(path)
    path.write_text(yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False))


def load_dataset(cfg: RunConfig, root: str | Path = ".") -> FrequencyDataset:
    try:
        return cfg.data.to_dataset(root)
    except (OSError, KeyError) as exc:
        raise ConfigurationError(f"cannot load data: {exc}") from exc
