"""Tests for channel downmixing."""

from audio_segmenter.audio.downmix import to_mono
from audio_segmenter.audio.wav_codec import SampleBuffer


def _buffer(samples: list[int], channels: int) -> SampleBuffer:
    return SampleBuffer(
        samples=samples, sample_rate=44100, num_channels=channels, bit_depth=16
    )


class TestToMono:
    """Tests for to_mono()."""

    def test_stereo_averages_channel_pairs(self) -> None:
        """[1,2,3,4,5,6] as stereo becomes [1,3,5]."""
        mono = to_mono(_buffer([1, 2, 3, 4, 5, 6], channels=2))

        assert mono.num_channels == 1
        assert mono.samples.tolist() == [1, 3, 5]

    def test_output_is_half_the_stereo_length(self) -> None:
        stereo = _buffer(list(range(100)), channels=2)
        assert len(to_mono(stereo).samples) == 50

    def test_division_truncates_toward_zero(self) -> None:
        """Negative averages round toward zero, not down."""
        mono = to_mono(_buffer([-3, 0, -1, -2, 3, 0], channels=2))
        assert mono.samples.tolist() == [-1, -1, 1]

    def test_multichannel_uses_mean_across_channels(self) -> None:
        mono = to_mono(_buffer([1, 2, 4, -10, -10, -5], channels=3))
        assert mono.samples.tolist() == [2, -8]

    def test_preserves_rate_and_bit_depth(self) -> None:
        mono = to_mono(_buffer([1, 2], channels=2))
        assert mono.sample_rate == 44100
        assert mono.bit_depth == 16

    def test_mono_input_is_copied(self) -> None:
        source = _buffer([7, 8, 9], channels=1)
        mono = to_mono(source)

        mono.samples[0] = 0
        assert source.samples.tolist() == [7, 8, 9]

    def test_full_scale_values_do_not_overflow(self) -> None:
        mono = to_mono(_buffer([32767, 32767, -32768, -32768], channels=2))
        assert mono.samples.tolist() == [32767, -32768]
