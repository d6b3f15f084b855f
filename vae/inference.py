"""
Non-amortized posterior inference and latent-space exploration.

`fit_variational_dist` fits a single diagonal Gaussian q(z) to the
posterior over the latent code of a partially observed image, using only
the pixels in its top half. The decoder is held fixed.
"""

import torch
import torch.nn as nn
from tqdm import tqdm
from typing import Callable, Optional, Sequence, Tuple

from vae.data import top_half, bottom_half
from vae.distributions import (
    bernoulli_log_density, factorized_gaussian_log_density, log_prior,
    sample_diag_gaussian
)

VariationalParams = Tuple[torch.Tensor, torch.Tensor]


def log_likelihood_top(decoder: nn.Module, x_top: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
    """
    Bernoulli log-likelihood of the observed top half given latent codes.

    Args:
        decoder: Decoder mapping latent codes to pixel probabilities
        x_top: Observed top-half pixels, shape (392,)
        z: Latent codes, shape (latent_dim,) or (latent_dim, K)

    Returns:
        Tensor of shape () or (K,)
    """
    logits = top_half(decoder.logits(z))
    if z.dim() > 1 and x_top.dim() == 1:
        x_top = x_top.unsqueeze(1)
    return torch.sum(bernoulli_log_density(logits, x_top), dim=0)


def joint_log_density_top(decoder: nn.Module, x_top: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
    return log_likelihood_top(decoder, x_top, z) + log_prior(z)


def elbo_estimate(params: VariationalParams,
                  log_joint: Callable[[torch.Tensor], torch.Tensor],
                  num_samples: int) -> torch.Tensor:
    """
    K-sample Monte Carlo ELBO for a single variational distribution.

    Args:
        params: (mean, log_std), each of shape (latent_dim,)
        log_joint: Unnormalized log posterior evaluated on (latent_dim, K) codes
        num_samples: Number of samples K

    Returns:
        Scalar tensor
    """
    mean, log_std = params
    mean = mean.unsqueeze(1).expand(-1, num_samples)
    log_std = log_std.unsqueeze(1).expand(-1, num_samples)

    z = sample_diag_gaussian(mean, log_std)
    return torch.mean(log_joint(z) - factorized_gaussian_log_density(mean, log_std, z))


def init_variational_params(latent_dim: int, init_mean: Optional[Sequence[float]] = None,
                            device=None) -> VariationalParams:
    """
    Starting point for posterior fitting.

    Defaults to the prior (zero mean, unit standard deviation).
    """
    if init_mean is None:
        mean = torch.zeros(latent_dim, device=device)
    else:
        mean = torch.as_tensor(init_mean, dtype=torch.float32, device=device)
        if mean.shape != (latent_dim,):
            raise ValueError(f"init_mean must have shape ({latent_dim},), got {tuple(mean.shape)}")
    log_std = torch.zeros(latent_dim, device=device)
    return mean, log_std


def fit_variational_dist(x_top: torch.Tensor,
                         decoder: nn.Module,
                         init_params: Optional[VariationalParams] = None,
                         num_itrs: int = 200,
                         lr: float = 1e-2,
                         num_samples: int = 10,
                         log_every: int = 10) -> VariationalParams:
    """
    Fit q(z) = N(mean, exp(log_std)^2) to p(z | top half of x) by gradient descent.

    Each iteration takes a plain step params -= lr * grad on the negative
    K-sample ELBO. There is no optimizer state and no convergence check.

    Args:
        x_top: Observed top-half pixels, shape (392,)
        decoder: Trained decoder, not updated
        init_params: Starting (mean, log_std); zeros when omitted
        num_itrs: Number of gradient steps
        lr: Step size
        num_samples: Monte Carlo samples per ELBO estimate
        log_every: Report the loss every this many iterations

    Returns:
        Fitted (mean, log_std)
    """
    device = x_top.device
    if init_params is None:
        init_params = init_variational_params(decoder.latent_dim, device=device)

    mean = init_params[0].detach().clone().to(device).requires_grad_(True)
    log_std = init_params[1].detach().clone().to(device).requires_grad_(True)

    def log_joint(z):
        return joint_log_density_top(decoder, x_top, z)

    for i in range(num_itrs):
        loss = -elbo_estimate((mean, log_std), log_joint, num_samples)
        grad_mean, grad_log_std = torch.autograd.grad(loss, (mean, log_std))

        with torch.no_grad():
            mean -= lr * grad_mean
            log_std -= lr * grad_log_std

        if (i + 1) % log_every == 0:
            tqdm.write(f"Iteration {i + 1}/{num_itrs}: loss {loss.item():.4f}")

    return mean.detach(), log_std.detach()


def reconstruct_from_top_half(x: torch.Tensor, decoder: nn.Module,
                              params: VariationalParams) -> torch.Tensor:
    """
    Complete an image from its observed top half.

    Samples one latent code from the fitted distribution, decodes it and
    keeps the decoded bottom half.

    Args:
        x: Full image of shape (784,); only its top half is used
        decoder: Trained decoder
        params: Fitted (mean, log_std)

    Returns:
        Image of shape (784,) with entries in [0, 1]
    """
    with torch.no_grad():
        z = sample_diag_gaussian(*params)
        decoded = decoder(z)
    return torch.cat([top_half(x), bottom_half(decoded)])


def interpolate_latent(model: nn.Module, x_a: torch.Tensor, x_b: torch.Tensor,
                       num_steps: int = 10) -> torch.Tensor:
    """
    Decode a straight line between the latent means of two images.

    Args:
        model: VAE
        x_a: First image, shape (784,)
        x_b: Second image, shape (784,)
        num_steps: Number of points including both endpoints

    Returns:
        Pixel probabilities of shape (784, num_steps)
    """
    with torch.no_grad():
        z_a = model.get_latent_representation(x_a)
        z_b = model.get_latent_representation(x_b)
        alphas = torch.linspace(0, 1, num_steps, device=z_a.device)
        z = (1 - alphas) * z_a.unsqueeze(1) + alphas * z_b.unsqueeze(1)
        return model.decode(z)


def select_class_pairs(labels: torch.Tensor, pairs: Sequence[Tuple[int, int]]):
    """
    Index of the first example of each class in every requested pair.

    Raises:
        ValueError: If a class does not occur in labels
    """
    def first_index(digit):
        matches = torch.nonzero(labels == digit).flatten()
        if len(matches) == 0:
            raise ValueError(f"No example with label {digit}")
        return int(matches[0])

    return [(first_index(a), first_index(b)) for a, b in pairs]


class PosteriorFitter:
    """
    Top-half posterior fitting against a fixed decoder.
    """

    def __init__(self, decoder: nn.Module, num_itrs: int = 200, lr: float = 1e-2,
                 num_samples: int = 10):
        self.decoder = decoder
        self.num_itrs = num_itrs
        self.lr = lr
        self.num_samples = num_samples

    def fit(self, x: torch.Tensor,
            init_params: Optional[VariationalParams] = None) -> VariationalParams:
        """Fit q(z) to the top half of a full image x."""
        return fit_variational_dist(
            top_half(x), self.decoder,
            init_params=init_params,
            num_itrs=self.num_itrs,
            lr=self.lr,
            num_samples=self.num_samples
        )

    def reconstruct(self, x: torch.Tensor, params: VariationalParams) -> torch.Tensor:
        return reconstruct_from_top_half(x, self.decoder, params)

    def log_joint(self, x: torch.Tensor, z: torch.Tensor) -> torch.Tensor:
        """Unnormalized top-half log posterior, for plotting."""
        with torch.no_grad():
            return joint_log_density_top(self.decoder, top_half(x), z)
