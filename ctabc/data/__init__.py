from ctabc.data.dataset import FrequencyDataset

__all__ = ["FrequencyDataset"]
