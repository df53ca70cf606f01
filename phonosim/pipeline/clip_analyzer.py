from __future__ import annotations

import dataclasses
import time
from typing import Optional

from phonosim.messages import FeatureRecord
from phonosim.pipeline.feature_extractor import FeatureExtractor
from phonosim.pipeline.sound_classifier import SoundClassifier


class ClipAnalyzer:
    """Feature extraction followed by classification, for one clip at a time."""

    def __init__(self, extractor: Optional[FeatureExtractor] = None, classifier: Optional[SoundClassifier] = None, verbose: bool = False):
        self.extractor = extractor or FeatureExtractor()
        self.classifier = classifier or SoundClassifier(self.extractor.thresholds)
        self.verbose = verbose

    def analyze(self, samples) -> FeatureRecord:
        t = time.perf_counter()
        record = self.extractor.analyze(samples)
        t_feats = time.perf_counter() - t
        t = time.perf_counter()
        record = dataclasses.replace(record, summary=self.classifier.summarize(record))
        t_cls = time.perf_counter() - t
        if self.verbose:
            print(
                f"[perf] clip={record.duration:.3f}s | features_ms={t_feats * 1000.0:.2f} | "
                f"classif_ms={t_cls * 1000.0:.2f}"
            )
        return record
