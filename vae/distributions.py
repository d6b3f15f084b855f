"""
Log-densities and samplers for the VAE.

All densities treat axis 0 as the feature axis: a single vector of shape
(D,) gives a scalar, a batch of shape (D, B) gives one value per column.
"""

import math

import torch
import torch.nn.functional as F


LOG_2PI = math.log(2 * math.pi)


def factorized_gaussian_log_density(mean, log_std, x) -> torch.Tensor:
    """
    Log-density of a diagonal Gaussian, summed over the feature axis.

    Args:
        mean: Mean, broadcastable to x
        log_std: Log standard deviation, broadcastable to x
        x: Points to evaluate, shape (D,) or (D, B)

    Returns:
        Tensor of shape () or (B,)
    """
    mean = torch.as_tensor(mean, dtype=x.dtype, device=x.device)
    log_std = torch.as_tensor(log_std, dtype=x.dtype, device=x.device)
    std = torch.exp(log_std)
    log_density = -0.5 * LOG_2PI - log_std - 0.5 * ((x - mean) / std).pow(2)
    return torch.sum(log_density, dim=0)


def bernoulli_log_density(logit_means: torch.Tensor, x: torch.Tensor) -> torch.Tensor:
    """
    Elementwise Bernoulli log-probability parameterized by logits.

    Computes -log(1 + exp(-b * logit)) with b = 2x - 1, which stays finite
    for logits far from zero.

    Args:
        logit_means: Logits of the success probability
        x: Binary observations in {0, 1}

    Returns:
        Log-probabilities with the broadcast shape of the inputs
    """
    b = 2 * x.to(logit_means.dtype) - 1
    return -F.softplus(-b * logit_means)


def log_prior(z: torch.Tensor) -> torch.Tensor:
    """Standard normal prior over latent codes."""
    return factorized_gaussian_log_density(0.0, 0.0, z)


def sample_diag_gaussian(mean: torch.Tensor, log_std: torch.Tensor) -> torch.Tensor:
    """
    Reparameterized sample from a diagonal Gaussian.

    Args:
        mean: Mean of the distribution
        log_std: Log standard deviation, same shape as mean

    Returns:
        Sample with the shape of mean
    """
    eps = torch.randn_like(mean)
    return mean + torch.exp(log_std) * eps


def sample_bernoulli(probs: torch.Tensor) -> torch.Tensor:
    """Independent coin flips, one per entry of probs."""
    return (torch.rand_like(probs) < probs).to(probs.dtype)
