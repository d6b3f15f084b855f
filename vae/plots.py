"""
Figures for exploring a trained VAE.

Every function saves a matplotlib figure to `save_path` and closes it.
"""

import torch
import numpy as np
import matplotlib.pyplot as plt

from vae.data import IMAGE_SIZE
from vae.distributions import factorized_gaussian_log_density, sample_bernoulli


def _as_image(x: torch.Tensor) -> np.ndarray:
    return x.detach().cpu().reshape(IMAGE_SIZE, IMAGE_SIZE).numpy()


def plot_prior_samples(model, save_path: str, num_samples: int = 10):
    """Bernoulli means of prior samples (top row) and binary draws from them (bottom row)."""
    probs = model.sample(num_samples).cpu()
    binary = sample_bernoulli(probs)

    fig, axes = plt.subplots(2, num_samples, figsize=(1.5 * num_samples, 3.5), squeeze=False)
    for i in range(num_samples):
        axes[0, i].imshow(_as_image(probs[:, i]), cmap='gray')
        axes[1, i].imshow(_as_image(binary[:, i]), cmap='gray')
        axes[0, i].axis('off')
        axes[1, i].axis('off')
    axes[0, 0].set_title('Bernoulli means', loc='left')
    axes[1, 0].set_title('Binary samples', loc='left')

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)


def plot_latent_means(model, x: torch.Tensor, labels: torch.Tensor, save_path: str):
    """Scatter of encoder means for every column of x, coloured by digit label."""
    with torch.no_grad():
        means = model.get_latent_representation(x).cpu().numpy()
    labels = labels.cpu().numpy()

    plt.figure(figsize=(8, 8))
    scatter = plt.scatter(means[0], means[1], c=labels, cmap='tab10', s=4, alpha=0.7)
    plt.colorbar(scatter, ticks=range(10), label='Digit')
    plt.xlabel('z1')
    plt.ylabel('z2')
    plt.title('Mean of q(z|x) for training images')

    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close()


def plot_interpolations(strips, save_path: str):
    """
    One row per interpolation.

    Args:
        strips: List of tensors of shape (784, num_steps)
        save_path: Output path
    """
    num_rows = len(strips)
    num_steps = strips[0].shape[1]

    fig, axes = plt.subplots(num_rows, num_steps, figsize=(1.2 * num_steps, 1.3 * num_rows),
                             squeeze=False)
    for row, strip in enumerate(strips):
        for col in range(num_steps):
            axes[row, col].imshow(_as_image(strip[:, col]), cmap='gray')
            axes[row, col].axis('off')

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)


def latent_grid(limit: float = 4.0, resolution: int = 100, device=None):
    """Square grid over the 2-D latent space, flattened to shape (2, resolution**2)."""
    axis = torch.linspace(-limit, limit, resolution, device=device)
    zs1, zs2 = torch.meshgrid(axis, axis, indexing='xy')
    return zs1, zs2, torch.stack([zs1.flatten(), zs2.flatten()])


def plot_posterior_contours(log_joint, params, save_path: str, limit: float = 4.0,
                            resolution: int = 100):
    """
    Contours of the unnormalized true posterior and of the fitted q(z).

    Args:
        log_joint: Callable mapping (2, N) latent codes to (N,) log densities
        params: Fitted (mean, log_std)
        save_path: Output path
    """
    mean, log_std = params
    zs1, zs2, z = latent_grid(limit, resolution, device=mean.device)

    with torch.no_grad():
        log_p = log_joint(z)
        log_q = factorized_gaussian_log_density(mean.unsqueeze(1), log_std.unsqueeze(1), z)

    shape = zs1.shape
    plt.figure(figsize=(6, 6))
    plt.contour(zs1.cpu().numpy(), zs2.cpu().numpy(),
                torch.exp(log_p - log_p.max()).reshape(shape).cpu().numpy(), colors='red')
    plt.contour(zs1.cpu().numpy(), zs2.cpu().numpy(),
                torch.exp(log_q).reshape(shape).cpu().numpy(), colors='blue')
    plt.xlabel('z1')
    plt.ylabel('z2')
    plt.title('p(z | top half) in red, q(z) in blue')

    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close()


def plot_reconstruction(original: torch.Tensor, reconstruction: torch.Tensor, save_path: str):
    """Original image beside its top-half completion."""
    fig, axes = plt.subplots(1, 2, figsize=(5, 2.8))
    axes[0].imshow(_as_image(original), cmap='gray')
    axes[0].set_title('Original')
    axes[1].imshow(_as_image(reconstruction), cmap='gray')
    axes[1].set_title('Completed')
    for ax in axes:
        ax.axis('off')

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
