"""Wrap extracted sample ranges as standalone WAV clips."""

from dataclasses import dataclass

import numpy as np

from audio_segmenter.audio.wav_codec import SampleBuffer, encode
from audio_segmenter.utils.datauri import WAV_MIME_TYPE, to_data_uri


@dataclass
class EncodedClip:
    """A standalone WAV file and its data-URI text form."""

    data: bytes

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, WAV_MIME_TYPE)


def encode_segment(samples: np.ndarray, source: SampleBuffer) -> EncodedClip:
    """Encode a slice using the source buffer's rate, channels and bit depth.

    Empty slices produce a valid header-only WAV.

    Raises:
        EncodeError: If the source format cannot be written.
        ResourceError: If the scratch buffer fails.
    """
    clip = SampleBuffer(
        samples=samples,
        sample_rate=source.sample_rate,
        num_channels=source.num_channels,
        bit_depth=source.bit_depth,
    )
    return EncodedClip(data=encode(clip, allow_empty=True))
