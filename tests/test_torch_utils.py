"""Test PyTorch helpers.

Tests for src.utils.torch_utils:
    - Device feature detection never raises for unknown devices
    - numpy ↔ tensor transfer keeps shape and values

Run:
    pytest tests/test_torch_utils.py -v
"""

import numpy as np
import pytest
import torch

from src.utils import torch_utils


def test_cpu_always_available():
    assert torch_utils.device_available('cpu')
    assert torch_utils.resolve_device('cpu') == torch.device('cpu')


def test_unknown_device_kind():
    assert not torch_utils.device_available('tpu')
    assert torch_utils.resolve_device('tpu') is None


def test_out_of_range_cuda_index():
    assert not torch_utils.device_available('cuda:99')


def test_malformed_device_string():
    assert torch_utils.resolve_device('cuda:x') is None


def test_roundtrip_hwc():
    array = np.arange(24, dtype=np.uint8).reshape(2, 3, 4)
    tensor = torch_utils.to_tensor_hwc(array, torch.device('cpu'))
    assert tensor.dtype == torch.float32
    assert tensor.shape == (2, 3, 4)
    back = torch_utils.to_numpy_hwc(tensor)
    assert np.array_equal(back, array.astype(np.float32))


def test_to_tensor_copies_non_contiguous():
    array = np.arange(24, dtype=np.float32).reshape(2, 3, 4)[::-1]
    tensor = torch_utils.to_tensor_hwc(array, torch.device('cpu'))
    assert tensor[0, 0, 0].item() == pytest.approx(12.0)


@pytest.mark.cuda
@pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available")
def test_cuda_transfer():
    tensor = torch_utils.to_tensor_hwc(np.ones((2, 2, 4), dtype=np.uint8), torch.device('cuda'))
    assert tensor.is_cuda
    assert torch_utils.to_numpy_hwc(tensor).sum() == 16
