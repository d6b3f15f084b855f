"""MNIST loading, binarization and batching.

The torchvision dataset is replaced by an in-memory stand-in so no download
happens during tests.
"""
import pytest
import torch

import vae.data as data_module
from vae.data import (
    HALF_PIXELS, NUM_PIXELS, batch_data, binarize, bottom_half, load_binarized_mnist, top_half
)


class FakeMNIST:
    sizes = {True: 10500, False: 10000}

    def __init__(self, root, train=True, download=True):
        generator = torch.Generator().manual_seed(0 if train else 1)
        size = self.sizes[train]
        self.data = torch.randint(0, 256, (size, 28, 28), dtype=torch.uint8, generator=generator)
        self.targets = torch.randint(0, 10, (size,), generator=generator)


@pytest.fixture
def fake_mnist(monkeypatch):
    monkeypatch.setattr(data_module.datasets, "MNIST", FakeMNIST)


def test_binarize_thresholds_and_flattens():
    images = torch.zeros(3, 28, 28, dtype=torch.uint8)
    images[0, 0, 0] = 200
    images[1, 27, 27] = 100
    images[2, 0, 1] = 128

    x = binarize(images)

    assert x.shape == (NUM_PIXELS, 3)
    assert x[0, 0] == 1.0
    assert x[-1, 1] == 0.0
    assert x[1, 2] == 1.0
    assert x.sum() == 2.0


def test_load_binarized_mnist_shapes(fake_mnist, tmp_path):
    (train_x, train_labels), (test_x, test_labels) = load_binarized_mnist(str(tmp_path))

    assert train_x.shape == (784, 10000)
    assert train_labels.shape == (10000,)
    assert test_x.shape == (784, 10000)
    assert test_labels.shape == (10000,)
    assert set(train_x.unique().tolist()) <= {0.0, 1.0}


def test_load_binarized_mnist_rejects_oversize_split(fake_mnist, tmp_path):
    with pytest.raises(ValueError):
        load_binarized_mnist(str(tmp_path), train_size=20000)


def test_batch_data_drops_remainder_and_keeps_columns():
    x = torch.arange(30, dtype=torch.float32).repeat(4, 1)

    batches = batch_data(x, batch_size=7)

    assert len(batches) == 4
    assert all(b.shape == (4, 7) for b in batches)
    seen = torch.cat([b[0] for b in batches]).long().tolist()
    assert len(set(seen)) == 28
    assert set(seen) <= set(range(30))


def test_batch_data_without_shuffle_preserves_order():
    x = torch.arange(10, dtype=torch.float32).unsqueeze(0)

    batches = batch_data(x, batch_size=5, shuffle=False)

    assert batches[0].tolist() == [[0, 1, 2, 3, 4]]
    assert batches[1].tolist() == [[5, 6, 7, 8, 9]]


def test_batch_data_rejects_non_positive_batch_size():
    with pytest.raises(ValueError):
        batch_data(torch.zeros(4, 10), batch_size=0)


def test_top_and_bottom_halves_split_rows():
    image = torch.zeros(28, 28)
    image[:14] = 1.0
    x = image.flatten()

    assert top_half(x).shape == (HALF_PIXELS,)
    assert torch.all(top_half(x) == 1.0)
    assert torch.all(bottom_half(x) == 0.0)
    assert torch.equal(torch.cat([top_half(x), bottom_half(x)]), x)

    batch = torch.stack([x, x], dim=1)
    assert top_half(batch).shape == (HALF_PIXELS, 2)
