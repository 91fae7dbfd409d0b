"""Retrieval of rendered frames and visual-content assertions."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Dict, Optional

from ..errors import ColorNotSignificant, FrameNotVisible, NoFrameAvailable
from ..models.media import ColorSample, Frame
from ..utils.retry import PollConfig, PollTimeoutError, poll_until
from .color_analyzer import ColorAnalyzer

if TYPE_CHECKING:
    from ..pipeline.driver import PipelineDriver

logger = logging.getLogger(__name__)


class FrameSampler:
    """Samples the last rendered frame of named sink elements.

    The most recent frame of each element is kept in :attr:`last_frames` and
    overwritten on every sample.
    """

    def __init__(
        self,
        driver: PipelineDriver,
        analyzer: Optional[ColorAnalyzer] = None,
        frame_timeout: float = 5.0,
        poll_interval: float = 0.1,
        color_timeout: float = 5.0,
        stable_duration: float = 1.0,
    ):
        self.driver = driver
        self.analyzer = analyzer or ColorAnalyzer()
        self.frame_timeout = frame_timeout
        self.poll_interval = poll_interval
        self.color_timeout = color_timeout
        self.stable_duration = stable_duration
        self.last_frames: Dict[str, Frame] = {}

    def _grab(self, element_name: str) -> Optional[Frame]:
        frame = self.driver.element(element_name).last_frame()
        if frame is not None:
            self.last_frames[element_name] = frame
        return frame

    def sample(self, element_name: str) -> Frame:
        """Return the most recent frame rendered by ``element_name``.

        Polls while the element has not rendered anything yet.

        Raises:
            UnknownElement: If the pipeline has no such element
            NoFrameAvailable: If no frame appeared within ``frame_timeout``
                or the element cannot provide frames
        """
        config = PollConfig(timeout=self.frame_timeout, interval=self.poll_interval)
        try:
            return poll_until(
                lambda: self._grab(element_name),
                config,
                predicate=lambda frame: frame is not None,
                description=f"frame on {element_name}",
            )
        except PollTimeoutError as e:
            raise NoFrameAvailable(
                element_name, f"no frame rendered within {self.frame_timeout:.1f}s"
            ) from e

    def has_visible_frame(self, element_name: str) -> bool:
        try:
            frame = self.sample(element_name)
        except NoFrameAvailable as e:
            logger.debug(f"No visible frame on {element_name}: {e.reason}")
            return False
        return not frame.is_empty

    def assert_frame_visible(self, element_name: str) -> Frame:
        """Fail unless a non-empty frame can be sampled from ``element_name``.

        Raises:
            FrameNotVisible: If no frame appeared in time or the frame is empty
        """
        try:
            frame = self.sample(element_name)
        except NoFrameAvailable as e:
            if self.driver.element(element_name).find_property("last-sample") is None:
                raise
            raise FrameNotVisible(element_name, e.reason) from e
        if frame.is_empty:
            raise FrameNotVisible(element_name, "the last frame has no pixels")
        logger.info(f"Frame visible on {element_name}: {frame.width}x{frame.height}")
        return frame

    def color_significance(self, frame: Frame, color_name: str) -> float:
        return self.analyzer.color_significance(frame, color_name)

    def assert_significant_color(self, element_name: str, color_name: str) -> ColorSample:
        """Wait until ``color_name`` covers enough of the frame for long enough.

        The color must stay above the significance threshold for
        ``stable_duration`` seconds, checked on fresh frames until
        ``color_timeout`` elapses.

        Raises:
            ColorNotSignificant: With the best observed fraction and the
                dominant colors of the last frame seen
        """
        state = {"since": None, "best": 0.0, "last": None}

        def _check() -> Optional[ColorSample]:
            frame = self._grab(element_name)
            if frame is None:
                return None
            return self.analyzer.sample(frame)

        def _stable(sample: Optional[ColorSample]) -> bool:
            if sample is None:
                return False
            fraction = sample.fraction(color_name)
            state["last"] = sample
            state["best"] = max(state["best"], fraction)
            if not self.analyzer.is_significant(fraction):
                state["since"] = None
                return False
            now = time.monotonic()
            if state["since"] is None:
                state["since"] = now
            return now - state["since"] >= self.stable_duration

        config = PollConfig(timeout=self.color_timeout, interval=self.poll_interval)
        try:
            sample = poll_until(
                _check, config, predicate=_stable, description=f"color {color_name} on {element_name}"
            )
        except PollTimeoutError as e:
            last = state["last"]
            raise ColorNotSignificant(
                element_name,
                color_name,
                observed=state["best"],
                threshold=self.analyzer.threshold,
                timeout=self.color_timeout,
                dominant=last.dominant() if last is not None else None,
            ) from e

        logger.info(
            f"Color {color_name} significant on {element_name}: {sample.fraction(color_name):.1%}"
        )
        return sample
