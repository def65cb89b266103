"""Stream module - wire codec, stream reader and cancellation."""

from .cancellation import CancellationHandle
from .codec import encode_request, encode_frame, decode_frame, split_frames
from .reader import consume

__all__ = ['CancellationHandle', 'encode_request', 'encode_frame', 'decode_frame', 'split_frames', 'consume']
