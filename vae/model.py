"""
Variational Autoencoder (VAE) model with fully-connected networks.

Encoder and decoder each have a single tanh hidden layer and operate on
feature-first tensors: a single example of shape (D,) or a batch of
shape (D, B).
"""

import torch
import torch.nn as nn
from typing import Tuple

from vae.data import NUM_PIXELS
from vae.distributions import (
    bernoulli_log_density, log_prior, sample_diag_gaussian
)
from vae.utils import count_parameters


def _apply_feature_first(net: nn.Module, x: torch.Tensor) -> torch.Tensor:
    # nn.Linear expects the feature axis last; .t() is a no-op on vectors
    return net(x.t()).t()


class Encoder(nn.Module):
    """
    MLP Encoder for VAE.

    Maps binary images to the mean and log standard deviation of a
    diagonal Gaussian over the latent space.
    """

    def __init__(self,
                 num_pixels: int = NUM_PIXELS,
                 hidden_dim: int = 500,
                 latent_dim: int = 2):
        """
        Initialize the encoder.

        Args:
            num_pixels: Number of input pixels (784 for MNIST)
            hidden_dim: Width of the hidden layer
            latent_dim: Dimension of the latent space
        """
        super().__init__()

        self.num_pixels = num_pixels
        self.hidden_dim = hidden_dim
        self.latent_dim = latent_dim

        self.net = nn.Sequential(
            nn.Linear(num_pixels, hidden_dim),
            nn.Tanh(),
            nn.Linear(hidden_dim, 2 * latent_dim),
        )

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Forward pass of the encoder.

        Args:
            x: Input tensor of shape (num_pixels,) or (num_pixels, batch_size)

        Returns:
            Tuple of (mean, log_std), each of shape (latent_dim, ...)
        """
        params = _apply_feature_first(self.net, x)
        mean, log_std = params[:self.latent_dim], params[self.latent_dim:]
        return mean, log_std


class Decoder(nn.Module):
    """
    MLP Decoder for VAE.

    Maps latent codes to per-pixel Bernoulli probabilities.
    """

    def __init__(self,
                 latent_dim: int = 2,
                 hidden_dim: int = 500,
                 num_pixels: int = NUM_PIXELS,
                 eps: float = 1e-6):
        """
        Initialize the decoder.

        Args:
            latent_dim: Dimension of the latent space
            hidden_dim: Width of the hidden layer
            num_pixels: Number of output pixels (784 for MNIST)
            eps: Probabilities are clamped to [eps, 1 - eps] before taking logits
        """
        super().__init__()

        self.latent_dim = latent_dim
        self.hidden_dim = hidden_dim
        self.num_pixels = num_pixels
        self.eps = eps

        self.net = nn.Sequential(
            nn.Linear(latent_dim, hidden_dim),
            nn.Tanh(),
            nn.Linear(hidden_dim, num_pixels),
            nn.Sigmoid(),
        )

    def forward(self, z: torch.Tensor) -> torch.Tensor:
        """
        Forward pass of the decoder.

        Args:
            z: Latent tensor of shape (latent_dim,) or (latent_dim, batch_size)

        Returns:
            Pixel probabilities of shape (num_pixels,) or (num_pixels, batch_size)
        """
        return _apply_feature_first(self.net, z)

    def logits(self, z: torch.Tensor) -> torch.Tensor:
        """
        Decoder output converted to logits.

        A saturated sigmoid returns exactly 0 or 1, so probabilities are
        clamped first to keep the logits finite.
        """
        return self.probs_to_logits(self(z))

    def probs_to_logits(self, probs: torch.Tensor) -> torch.Tensor:
        p = probs.clamp(self.eps, 1 - self.eps)
        return torch.log(p / (1 - p))


class VAE(nn.Module):
    """
    Variational Autoencoder pairing an amortized encoder with a decoder.

    Combines the two networks with the standard normal prior and the
    Bernoulli likelihood.
    """

    def __init__(self,
                 num_pixels: int = NUM_PIXELS,
                 hidden_dim: int = 500,
                 latent_dim: int = 2):
        """
        Initialize the VAE.

        Args:
            num_pixels: Number of pixels per image
            hidden_dim: Hidden width shared by encoder and decoder
            latent_dim: Dimension of the latent space
        """
        super().__init__()

        self.num_pixels = num_pixels
        self.hidden_dim = hidden_dim
        self.latent_dim = latent_dim

        self.encoder = Encoder(num_pixels, hidden_dim, latent_dim)
        self.decoder = Decoder(latent_dim, hidden_dim, num_pixels)

    def encode(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        return self.encoder(x)

    def decode(self, z: torch.Tensor) -> torch.Tensor:
        return self.decoder(z)

    def reparameterize(self, mean: torch.Tensor, log_std: torch.Tensor) -> torch.Tensor:
        """
        Reparameterization trick to sample from latent distribution.

        Args:
            mean: Mean of latent distribution
            log_std: Log standard deviation of latent distribution

        Returns:
            Sampled latent vectors
        """
        return sample_diag_gaussian(mean, log_std)

    def log_likelihood(self, x: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
        """
        Bernoulli log-likelihood log p(x|z), summed over pixels.

        Args:
            x: Binary images of shape (num_pixels,) or (num_pixels, batch_size)
            z: Latent codes matching x along the batch axis

        Returns:
            Tensor of shape () or (batch_size,)
        """
        return torch.sum(bernoulli_log_density(self.decoder.logits(z), x), dim=0)

    def joint_log_density(self, x: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
        """log p(x, z) = log p(x|z) + log p(z)."""
        return self.log_likelihood(x, z) + log_prior(z)

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """
        Forward pass of the VAE.

        Args:
            x: Input tensor of shape (num_pixels, batch_size)

        Returns:
            Tuple of (z, mean, log_std)
        """
        mean, log_std = self.encode(x)
        z = self.reparameterize(mean, log_std)
        return z, mean, log_std

    def sample(self, num_samples: int = 1) -> torch.Tensor:
        """
        Decode latent codes drawn from the prior.

        Args:
            num_samples: Number of samples to generate

        Returns:
            Pixel probabilities of shape (num_pixels, num_samples)
        """
        device = next(self.parameters()).device
        z = torch.randn(self.latent_dim, num_samples, device=device)

        with torch.no_grad():
            samples = self.decoder(z)

        return samples

    def get_latent_representation(self, x: torch.Tensor) -> torch.Tensor:
        """
        Get latent representation without sampling (deterministic).

        Args:
            x: Input tensor

        Returns:
            Mean of latent distribution
        """
        mean, _ = self.encoder(x)
        return mean

    def extra_repr(self) -> str:
        return f"parameters={count_parameters(self):,}"
