"""
VAE Trainer for amortized variational inference on binarized MNIST.

Fits encoder and decoder jointly by maximizing a single-sample Monte Carlo
ELBO with Adam, then writes both networks to the checkpoint directory.
"""

import torch
import os
import argparse
from tqdm import tqdm
import numpy as np
from typing import Dict, Any, Optional

from vae.model import VAE
from vae.losses import ELBOLoss
from vae.data import load_binarized_mnist, batch_data
from vae.utils import (
    set_seed, get_device, create_optimizer, save_checkpoint, load_checkpoint,
    log_hyperparameters, log_metrics, load_config, plot_losses, print_model_summary
)


class VAETrainer:
    """
    VAE Trainer for binarized MNIST.
    Handles training loop, periodic evaluation, logging, and checkpointing.
    """

    def __init__(self, config: Dict[str, Any], data=None):
        """
        Initialize the VAE trainer.

        Args:
            config: Configuration dictionary
            data: Optional ((train_x, train_labels), (test_x, test_labels));
                loaded from MNIST when omitted
        """
        self.config = config
        self.device = torch.device(config['device']) if config.get('device') else get_device()
        self.experiment_name = config['experiment_name']

        set_seed(config['seed'])

        self.model = VAE(
            num_pixels=config['num_pixels'],
            hidden_dim=config['hidden_dim'],
            latent_dim=config['latent_dim']
        ).to(self.device)

        self.loss_fn = ELBOLoss()

        self.optimizer = create_optimizer(
            self.model,
            optimizer_type=config['optimizer_type'],
            learning_rate=config['learning_rate']
        )

        if data is None:
            data = load_binarized_mnist(
                data_dir=config['data_dir'],
                train_size=config['train_size'],
                test_size=config['test_size'],
                threshold=config['binarize_threshold']
            )
        (train_x, _), (test_x, _) = data
        for split, x in (("train", train_x), ("test", test_x)):
            if x.shape[1] < config['batch_size']:
                raise ValueError(
                    f"{split} split has {x.shape[1]} images, fewer than one batch of "
                    f"{config['batch_size']}"
                )
        self.train_x = train_x.to(self.device)
        self.test_x = test_x.to(self.device)

        # Fixed held-out batch so reported test losses are comparable across epochs
        self.test_batch = batch_data(self.test_x, config['batch_size'])[0]

        self.current_epoch = 0
        self.global_step = 0

        self.log_dir = os.path.join(config['log_dir'], self.experiment_name)
        os.makedirs(self.log_dir, exist_ok=True)
        log_file = os.path.join(self.log_dir, "training_log.txt")
        if os.path.exists(log_file):
            os.remove(log_file)

        log_hyperparameters(config, self.log_dir)
        print_model_summary(self.model)

    def train_step(self, batch: torch.Tensor) -> Dict[str, float]:
        """
        Single training step.

        Args:
            batch: Binary images of shape (num_pixels, batch_size)

        Returns:
            Dictionary containing loss values
        """
        loss, log_joint, log_variational = self.loss_fn(self.model, batch)

        if not torch.isfinite(loss):
            raise FloatingPointError(
                f"Non-finite loss {loss.item()} at epoch {self.current_epoch + 1}, "
                f"step {self.global_step}"
            )

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        return {
            'loss': loss.item(),
            'log_joint': log_joint.item(),
            'log_q': log_variational.item(),
        }

    def evaluate(self, batch: Optional[torch.Tensor] = None) -> float:
        """
        Negative ELBO on a held-out batch.

        Args:
            batch: Batch to evaluate; defaults to the fixed test batch

        Returns:
            Loss value
        """
        if batch is None:
            batch = self.test_batch

        self.model.eval()
        with torch.no_grad():
            loss, _, _ = self.loss_fn(self.model, batch)
        self.model.train()

        return loss.item()

    def save_checkpoint(self):
        return save_checkpoint(self.model, self.config['checkpoint_dir'])

    def train(self):
        """
        Main training loop.

        Returns:
            List of (epoch, train_loss, test_loss) for every evaluated epoch
        """
        print(f"Starting VAE training on {self.device}")
        print(f"Experiment: {self.experiment_name}")

        history = []
        for epoch in range(self.current_epoch, self.config['num_epochs']):
            self.current_epoch = epoch

            self.model.train()
            train_losses = []
            batches = batch_data(self.train_x, self.config['batch_size'])
            pbar = tqdm(batches, desc=f"Epoch {epoch+1}/{self.config['num_epochs']}")

            for batch in pbar:
                step_losses = self.train_step(batch)
                train_losses.append(step_losses['loss'])

                pbar.set_postfix({
                    'Loss': f"{step_losses['loss']:.4f}",
                    'Log Joint': f"{step_losses['log_joint']:.4f}",
                    'Log q': f"{step_losses['log_q']:.4f}",
                })

                self.global_step += 1

            if (epoch + 1) % self.config['eval_every'] == 0:
                avg_train_loss = float(np.mean(train_losses))
                test_loss = self.evaluate()
                log_metrics(self.log_dir, avg_train_loss, test_loss, epoch + 1)
                history.append((epoch + 1, avg_train_loss, test_loss))

        self.current_epoch = self.config['num_epochs']
        self.save_checkpoint()
        print("Training completed!")
        return history


def load_trained_model(config: Dict[str, Any], device=None) -> VAE:
    """
    Build a VAE from config and restore the encoder and decoder checkpoints.

    Args:
        config: Configuration dictionary
        device: Device to place the model on

    Returns:
        VAE in eval mode
    """
    device = device if device is not None else get_device()
    model = VAE(
        num_pixels=config['num_pixels'],
        hidden_dim=config['hidden_dim'],
        latent_dim=config['latent_dim']
    )
    load_checkpoint(model, config['checkpoint_dir'], device=device)
    model.to(device)
    model.eval()
    return model


def get_default_config():
    """
    Get default configuration for training.

    Returns:
        Configuration dictionary
    """
    return {
        # Model parameters
        'num_pixels': 784,
        'hidden_dim': 500,
        'latent_dim': 2,

        # Data parameters
        'train_size': 10000,
        'test_size': 10000,
        'binarize_threshold': 0.5,

        # Training parameters
        'num_epochs': 100,
        'batch_size': 100,
        'learning_rate': 1e-3,
        'optimizer_type': 'adam', # 'adam' or 'sgd'
        'eval_every': 10,
        'seed': 42,
        'device': None,

        # Posterior inference parameters
        'posterior_num_itrs': 200,
        'posterior_lr': 1e-2,
        'posterior_num_samples': 10,
        'posterior_init_mean': None,
        'posterior_example_index': 0,
        'interpolation_steps': 10,
        'interpolation_pairs': [(0, 1), (3, 8), (4, 9)],
        'num_prior_samples': 10,

        # Logging and saving
        'checkpoint_dir': 'trained_models',
        'log_dir': 'logs',
        'data_dir': 'data',
        'results_dir': 'results',
        'experiment_name': 'vae_mnist',
    }


def main():
    """
    Main function to run VAE training.
    """
    parser = argparse.ArgumentParser(description="Train VAE on binarized MNIST")
    parser.add_argument('--config', type=str, help='Path to config file')
    parser.add_argument('--epochs', type=int, help='Number of epochs')
    parser.add_argument('--batch-size', type=int, help='Batch size')
    parser.add_argument('--lr', type=float, help='Learning rate')
    parser.add_argument('--checkpoint-dir', type=str, help='Directory for encoder/decoder checkpoints')

    args = parser.parse_args()

    config = get_default_config()
    if args.config:
        config = load_config(args.config, config)

    if args.epochs:
        config['num_epochs'] = args.epochs
    if args.batch_size:
        config['batch_size'] = args.batch_size
    if args.lr:
        config['learning_rate'] = args.lr
    if args.checkpoint_dir:
        config['checkpoint_dir'] = args.checkpoint_dir

    trainer = VAETrainer(config)
    trainer.train()

    log_file = os.path.join(trainer.log_dir, "training_log.txt")
    if os.path.exists(log_file):
        plot_losses(log_file, os.path.join(trainer.log_dir, "loss_plot.png"))


if __name__ == "__main__":
    main()
