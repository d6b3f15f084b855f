"""
Exploration of a trained VAE: prior samples, latent means, interpolations
and top-half completion.
"""

import argparse
import os
import torch
from typing import Any, Dict

from vae.data import load_binarized_mnist
from vae.inference import (
    PosteriorFitter, init_variational_params, interpolate_latent, select_class_pairs
)
from vae.plots import (
    plot_interpolations, plot_latent_means, plot_posterior_contours, plot_prior_samples,
    plot_reconstruction
)
from vae.train import get_default_config, load_trained_model
from vae.utils import get_device, load_config, set_seed


class Explorer:
    """
    Runs the exploratory tasks against saved encoder/decoder checkpoints.
    """

    def __init__(self, config: Dict[str, Any], model=None, data=None):
        """
        Initialize the explorer.

        Args:
            config: Configuration dictionary
            model: Optional VAE; restored from config['checkpoint_dir'] when omitted
            data: Optional ((train_x, train_labels), (test_x, test_labels))
        """
        self.config = config
        self.device = torch.device(config['device']) if config.get('device') else get_device()

        set_seed(config['seed'])

        self.model = model if model is not None else load_trained_model(config, self.device)
        self.model.eval()

        if data is None:
            data = load_binarized_mnist(
                data_dir=config['data_dir'],
                train_size=config['train_size'],
                test_size=config['test_size'],
                threshold=config['binarize_threshold']
            )
        (self.train_x, self.train_labels), _ = data
        self.train_x = self.train_x.to(self.device)

        self.results_dir = os.path.join(config['results_dir'], config['experiment_name'])
        os.makedirs(self.results_dir, exist_ok=True)

        self.fitter = PosteriorFitter(
            self.model.decoder,
            num_itrs=config['posterior_num_itrs'],
            lr=config['posterior_lr'],
            num_samples=config['posterior_num_samples']
        )

    def _path(self, name: str) -> str:
        return os.path.join(self.results_dir, name)

    def prior_samples(self):
        path = self._path("prior_samples.png")
        plot_prior_samples(self.model, path, num_samples=self.config['num_prior_samples'])
        print(f"Prior samples saved to {path}")

    def latent_means(self):
        path = self._path("latent_means.png")
        plot_latent_means(self.model, self.train_x, self.train_labels, path)
        print(f"Latent means saved to {path}")

    def interpolations(self):
        pairs = select_class_pairs(self.train_labels, self.config['interpolation_pairs'])
        strips = [
            interpolate_latent(self.model, self.train_x[:, a], self.train_x[:, b],
                               num_steps=self.config['interpolation_steps'])
            for a, b in pairs
        ]
        path = self._path("interpolations.png")
        plot_interpolations(strips, path)
        print(f"Interpolations saved to {path}")
        return strips

    def complete_top_half(self):
        """
        Fit q(z) to the top half of one training image and complete its bottom half.

        Returns:
            Tuple of (fitted params, completed image)
        """
        x = self.train_x[:, self.config['posterior_example_index']]
        init_params = init_variational_params(
            self.model.latent_dim, self.config['posterior_init_mean'], device=self.device
        )

        print("Fitting variational distribution to the top half...")
        params = self.fitter.fit(x, init_params=init_params)
        reconstruction = self.fitter.reconstruct(x, params)

        plot_posterior_contours(lambda z: self.fitter.log_joint(x, z), params,
                                self._path("posterior_contours.png"))
        plot_reconstruction(x, reconstruction, self._path("reconstruction.png"))
        print(f"Posterior mean: {params[0].tolist()}, log std: {params[1].tolist()}")
        return params, reconstruction

    def run(self):
        self.prior_samples()
        self.latent_means()
        self.interpolations()
        self.complete_top_half()
        print(f"Results written to {self.results_dir}")


def main():
    """
    Main function to explore a trained VAE.
    """
    parser = argparse.ArgumentParser(description="Explore a trained MNIST VAE")
    parser.add_argument('--config', type=str, help='Path to config file')
    parser.add_argument('--checkpoint-dir', type=str, help='Directory holding encoder.pth and decoder.pth')
    parser.add_argument('--results-dir', type=str, help='Directory for figures')
    parser.add_argument('--example-index', type=int, help='Training image used for top-half completion')
    parser.add_argument('--init-mean', type=float, nargs='+', help='Initial posterior mean')
    parser.add_argument('--seed', type=int, help='Random seed')

    args = parser.parse_args()

    config = get_default_config()
    if args.config:
        config = load_config(args.config, config)

    if args.checkpoint_dir:
        config['checkpoint_dir'] = args.checkpoint_dir
    if args.results_dir:
        config['results_dir'] = args.results_dir
    if args.example_index is not None:
        config['posterior_example_index'] = args.example_index
    if args.init_mean:
        config['posterior_init_mean'] = args.init_mean
    if args.seed is not None:
        config['seed'] = args.seed

    explorer = Explorer(config)
    explorer.run()


if __name__ == "__main__":
    main()
