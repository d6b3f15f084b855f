"""Shared fixtures for the VAE tests.

Puts the project root on sys.path so `vae` imports without an install step.
"""
import sys
from pathlib import Path

import pytest
import torch

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from vae.model import VAE  # noqa: E402


@pytest.fixture(autouse=True)
def seed():
    torch.manual_seed(0)


@pytest.fixture
def small_vae():
    return VAE(num_pixels=784, hidden_dim=32, latent_dim=2)


def make_binary_images(num_examples, num_pixels=784, generator=None):
    """Two noisy prototype digits, so there is structure to learn."""
    prototypes = (torch.rand(num_pixels, 2, generator=generator) < 0.3).float()
    probs = prototypes * 0.9 + 0.05
    which = torch.randint(0, 2, (num_examples,), generator=generator)
    x = (torch.rand(num_pixels, num_examples, generator=generator) < probs[:, which]).float()
    return x, which


@pytest.fixture
def synthetic_data():
    generator = torch.Generator().manual_seed(1)
    x, labels = make_binary_images(1200, generator=generator)
    train_x, train_labels = x[:, :1000], labels[:1000]
    test_x, test_labels = x[:, 1000:], labels[1000:]
    return (train_x, train_labels), (test_x, test_labels)
