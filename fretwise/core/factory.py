"""Factories for analyzers and the components around them."""

from typing import Any, Callable, Dict, Optional, Type

from ..audio.audio_input import SoundDeviceInput, WavFileInput
from ..audio.dsp_analyzer import DspAnalyzer
from ..audio.tempo import TempoEstimator
from ..logger import get_logger
from ..note_matcher import NoteMatcher
from ..session import AnalysisSession
from .capabilities import AnalyzerTier, detect_capabilities, tier_description
from .config import ConfigManager
from .interfaces import AudioAnalyzer, IAudioInput

logger = get_logger(__name__)


class AnalyzerFactory:
    """Builds the analyzer for a device and keeps one per process.

    Every tier maps to an implementation; tiers without their own
    implementation yet fall back to the DSP analyzer.
    """

    _instance: Optional[AudioAnalyzer] = None

    tier_classes: Dict[AnalyzerTier, Type[AudioAnalyzer]] = {
        AnalyzerTier.LOW: DspAnalyzer,
    }

    @classmethod
    def create(
        cls, sample_rate: int = 44100, force: bool = False, **kwargs: Any
    ) -> AudioAnalyzer:
        """Create or get the singleton analyzer.

        Args:
            sample_rate: Audio sample rate in Hz
            force: Build a new analyzer even if one is cached
            **kwargs: Passed to the analyzer constructor; any settings force a rebuild

        Returns:
            The process-wide analyzer instance
        """
        cached = cls._instance
        if cached is not None and not force:
            if kwargs:
                logger.debug("New analyzer settings given, rebuilding analyzer")
            elif cached.sample_rate == sample_rate:
                return cached
            else:
                logger.info(
                    f"Sample rate changed ({cached.sample_rate} -> {sample_rate}Hz), "
                    "rebuilding analyzer"
                )

        capabilities = detect_capabilities()
        cls._instance = cls.create_for_tier(capabilities.tier, sample_rate, **kwargs)
        return cls._instance

    @classmethod
    def create_for_tier(
        cls, tier: Any, sample_rate: int = 44100, **kwargs: Any
    ) -> AudioAnalyzer:
        """Create an analyzer for a tier, falling back to DSP.

        Args:
            tier: An AnalyzerTier, its string value, or anything else
            sample_rate: Audio sample rate in Hz
            **kwargs: Passed to the analyzer constructor

        Returns:
            A working analyzer for any input
        """
        try:
            tier = AnalyzerTier(tier)
        except ValueError:
            logger.warning(f"Unknown analyzer tier {tier!r}, falling back to DSP")
            return DspAnalyzer(sample_rate, **kwargs)

        analyzer_class = cls.tier_classes.get(tier)
        if analyzer_class is None:
            logger.warning(
                f"{tier_description(tier)} ({tier.value}) not yet implemented, "
                "falling back to DSP"
            )
            analyzer_class = DspAnalyzer
        else:
            logger.info(f"Using {tier_description(tier)} ({tier.value})")
        return analyzer_class(sample_rate, **kwargs)

    @classmethod
    def reset(cls) -> None:
        """Drop the cached analyzer so the next create() rebuilds it."""
        cls._instance = None


class ComponentFactory:
    """Builds configured analyzers, audio inputs and sessions."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        self.audio_input_classes: Dict[str, Callable[..., IAudioInput]] = {
            "live": SoundDeviceInput,
            "wav": WavFileInput,
        }

    def create_analyzer(
        self,
        sample_rate: Optional[int] = None,
        force: bool = False,
        clock: Optional[Callable[[], float]] = None,
    ) -> AudioAnalyzer:
        """Create the analyzer from the stored analyzer/tempo/scoring sections.

        Args:
            sample_rate: Overrides the configured sample rate
            force: Rebuild even if an analyzer is cached
            clock: Wall-clock millisecond source for onsets

        Returns:
            An analyzer built from the current configuration, which also
            becomes the process-wide instance
        """
        config = self.config_manager.get_config("analyzer")
        configured_rate = config.pop("sample_rate", 44100)
        rate = sample_rate or configured_rate

        tempo = TempoEstimator(**self.config_manager.get_config("tempo"))
        matcher = NoteMatcher(**self.config_manager.get_config("scoring"))
        return AnalyzerFactory.create(
            rate,
            force=force,
            tempo_estimator=tempo,
            note_matcher=matcher,
            clock=clock,
            **config,
        )

    def create_audio_input(self, implementation: str = "live", **kwargs: Any) -> IAudioInput:
        """Create an audio-frame source.

        Args:
            implementation: 'live' (sounddevice) or 'wav' (file replay)
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Audio input instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.audio_input_classes:
            raise ValueError(f"Unknown audio input implementation: {implementation}")

        audio_config = self.config_manager.get_config("audio_input")
        if implementation == "live":
            config = audio_config
        else:
            config = {
                "frame_size": audio_config["frame_size"],
                "tick_interval": self.config_manager.get_config("session")["tick_interval"],
            }
        config.update(kwargs)

        instance = self.audio_input_classes[implementation](**config)
        logger.info(f"Created audio input: {implementation}")
        return instance

    def create_session(
        self,
        frame_source: IAudioInput,
        analyzer: Optional[AudioAnalyzer] = None,
        **kwargs: Any,
    ) -> AnalysisSession:
        """Create an analysis session over a frame source.

        Args:
            frame_source: Audio input polled on every tick
            analyzer: Analyzer to use, or None for the configured one
            **kwargs: Overrides for the session section of the configuration

        Returns:
            AnalysisSession instance (not started)
        """
        if analyzer is None:
            analyzer = self.create_analyzer(sample_rate=frame_source.sample_rate)

        config = self.config_manager.get_config("session")
        config.update(kwargs)
        session = AnalysisSession(frame_source, analyzer, **config)
        logger.info("Created analysis session")
        return session
