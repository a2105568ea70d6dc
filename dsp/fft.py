"""In-place radix-2 Cooley-Tukey FFT over split real/imaginary buffers."""
from functools import lru_cache

import numpy as np


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


def _check_buffers(re: np.ndarray, im: np.ndarray) -> int:
    if not isinstance(re, np.ndarray) or not isinstance(im, np.ndarray):
        raise ValueError("fft buffers must be numpy arrays")
    if re.ndim != 1 or im.ndim != 1:
        raise ValueError("fft buffers must be one-dimensional")
    if re.shape != im.shape:
        raise ValueError(f"fft buffers differ in length ({len(re)} vs {len(im)})")
    if not (np.issubdtype(re.dtype, np.floating) and np.issubdtype(im.dtype, np.floating)):
        raise ValueError("fft buffers must hold floating-point samples")
    if not (re.flags.writeable and im.flags.writeable):
        raise ValueError("fft buffers must be writeable")
    if not (re.flags.c_contiguous and im.flags.c_contiguous):
        raise ValueError("fft buffers must be contiguous")
    n = len(re)
    if not is_power_of_two(n):
        raise ValueError(f"fft length must be a power of two, got {n}")
    return n


@lru_cache(maxsize=16)
def _bit_reversed_order(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    rev.flags.writeable = False
    return rev


def _stage_twiddles(size: int):
    """exp(-2*pi*i*k/size) for k < size/2, from one cos/sin pair per stage."""
    half = size // 2
    angle = -2.0 * np.pi / size
    step = complex(np.cos(angle), np.sin(angle))
    twiddle = np.ones(half, dtype=np.complex128)
    if half > 1:
        twiddle[1:] = np.cumprod(np.full(half - 1, step))
    return twiddle.real.copy(), twiddle.imag.copy()


def fft_in_place(re: np.ndarray, im: np.ndarray) -> None:
    """Forward DFT, X[k] = sum_n x[n] * exp(-2*pi*i*n*k/N), computed in place.

    Args:
        re: Real parts, length N (a power of two). Overwritten with Re(X).
        im: Imaginary parts, same length. Overwritten with Im(X).

    Raises:
        ValueError: On mismatched, non-float, read-only, non-contiguous or
            non-power-of-two buffers.
    """
    n = _check_buffers(re, im)
    if n == 1:
        return

    order = _bit_reversed_order(n)
    re[:] = re[order]
    im[:] = im[order]

    size = 2
    while size <= n:
        half = size // 2
        tw_re, tw_im = _stage_twiddles(size)

        # Row b holds block b of this stage; views, so writes land in re/im.
        blocks_re = re.reshape(-1, size)
        blocks_im = im.reshape(-1, size)
        odd_re = blocks_re[:, half:]
        odd_im = blocks_im[:, half:]

        t_re = tw_re * odd_re - tw_im * odd_im
        t_im = tw_re * odd_im + tw_im * odd_re

        blocks_re[:, half:] = blocks_re[:, :half] - t_re
        blocks_im[:, half:] = blocks_im[:, :half] - t_im
        blocks_re[:, :half] += t_re
        blocks_im[:, :half] += t_im

        size *= 2


def ifft_in_place(re: np.ndarray, im: np.ndarray) -> None:
    """Inverse DFT via the forward kernel: x = conj(FFT(conj(X))) / N."""
    n = _check_buffers(re, im)
    np.negative(im, out=im)
    fft_in_place(re, im)
    np.negative(im, out=im)
    re /= n
    im /= n
