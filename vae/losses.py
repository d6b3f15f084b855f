"""
Evidence lower bound (ELBO) for Variational Autoencoder (VAE) training.

The ELBO is estimated with a single reparameterized latent sample per
image, so its gradient flows through both encoder and decoder.
"""

import torch
import torch.nn as nn
from typing import Tuple

from vae.distributions import factorized_gaussian_log_density


def log_q(mean: torch.Tensor, log_std: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
    """Log-density of the variational posterior q(z|x)."""
    return factorized_gaussian_log_density(mean, log_std, z)


class ELBOLoss(nn.Module):
    """
    Negative Monte Carlo ELBO.

    For each example the estimate is log p(x, z) - log q(z|x) with
    z ~ q(z|x); the batch estimate is the mean over examples.
    """

    def forward(self, model: nn.Module,
                x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """
        Compute the loss for a batch.

        Args:
            model: VAE providing `forward` and `joint_log_density`
            x: Binary images of shape (num_pixels, batch_size)

        Returns:
            Tuple of (loss, mean log joint, mean log q)
        """
        z, mean, log_std = model(x)

        log_joint = model.joint_log_density(x, z)
        log_variational = log_q(mean, log_std, z)

        elbo_estimate = torch.mean(log_joint - log_variational)
        return -elbo_estimate, log_joint.mean(), log_variational.mean()


def elbo(model: nn.Module, x: torch.Tensor) -> torch.Tensor:
    """
    Single-sample ELBO estimate averaged over the batch.

    Args:
        model: Trained or untrained VAE
        x: Binary images of shape (num_pixels, batch_size)

    Returns:
        Scalar tensor
    """
    loss, _, _ = ELBOLoss()(model, x)
    return -loss
