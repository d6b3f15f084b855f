import torch
import torch.nn as nn
import random
import numpy as np
import os
import importlib.util
from typing import Dict, Any
import matplotlib.pyplot as plt


def set_seed(seed: int):
    """
    Set random seed for reproducibility.

    Args:
        seed: Random seed
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)
    torch.backends.cudnn.deterministic = True
    torch.backends.cudnn.benchmark = False
    os.environ['PYTHONHASHSEED'] = str(seed)


def get_device() -> torch.device:
    """
    Get the best available device.

    Returns:
        Device to use
    """
    if torch.cuda.is_available():
        return torch.device("cuda")
    elif torch.backends.mps.is_available():
        return torch.device("mps")
    else:
        return torch.device("cpu")


def count_parameters(model: nn.Module) -> int:
    """
    Count the number of trainable parameters in a model.

    Args:
        model: Model to count parameters for

    Returns:
        Number of trainable parameters
    """
    return sum(p.numel() for p in model.parameters() if p.requires_grad)


def compute_model_size_mb(model: nn.Module) -> float:
    """
    Compute model size in MB.

    Args:
        model: Model to compute size for

    Returns:
        Model size in MB
    """
    param_size = sum(p.nelement() * p.element_size() for p in model.parameters())
    buffer_size = sum(b.nelement() * b.element_size() for b in model.buffers())
    return (param_size + buffer_size) / 1024 / 1024


def print_model_summary(model: nn.Module):
    """
    Print model summary including parameter count and size.

    Args:
        model: Model to summarize
    """
    print(f"Model Summary:")
    print(f"  Total parameters: {count_parameters(model):,}")
    print(f"  Model size: {compute_model_size_mb(model):.2f} MB")
    print(f"  Model structure:")
    print(model)


def create_optimizer(model: nn.Module, optimizer_type: str = "adam",
                     learning_rate: float = 1e-3, **kwargs) -> torch.optim.Optimizer:
    """
    Create optimizer over all encoder and decoder parameters.

    Args:
        model: Model to optimize
        optimizer_type: Type of optimizer ("adam", "sgd")
        learning_rate: Learning rate
        **kwargs: Additional arguments for optimizer

    Returns:
        Optimizer
    """
    if optimizer_type == "adam":
        return torch.optim.Adam(model.parameters(), lr=learning_rate, **kwargs)
    elif optimizer_type == "sgd":
        return torch.optim.SGD(model.parameters(), lr=learning_rate, **kwargs)
    else:
        raise ValueError(f"Unknown optimizer type: {optimizer_type}")


def save_checkpoint(model: nn.Module, checkpoint_dir: str):
    """
    Save encoder and decoder parameters as two separate files.

    Args:
        model: VAE holding `encoder` and `decoder` submodules
        checkpoint_dir: Directory to write into (created if absent)

    Returns:
        Tuple of (encoder_path, decoder_path)
    """
    os.makedirs(checkpoint_dir, exist_ok=True)
    encoder_path = os.path.join(checkpoint_dir, "encoder.pth")
    decoder_path = os.path.join(checkpoint_dir, "decoder.pth")

    torch.save(model.encoder.state_dict(), encoder_path)
    torch.save(model.decoder.state_dict(), decoder_path)
    print(f"Encoder saved to {encoder_path}")
    print(f"Decoder saved to {decoder_path}")
    return encoder_path, decoder_path


def load_checkpoint(model: nn.Module, checkpoint_dir: str, device=None):
    """
    Load encoder and decoder parameters written by `save_checkpoint`.

    Args:
        model: VAE to load parameters into
        checkpoint_dir: Directory holding encoder.pth and decoder.pth
        device: Device to map tensors to
    """
    map_location = device if device is not None else "cpu"
    encoder_path = os.path.join(checkpoint_dir, "encoder.pth")
    decoder_path = os.path.join(checkpoint_dir, "decoder.pth")

    model.encoder.load_state_dict(torch.load(encoder_path, map_location=map_location))
    model.decoder.load_state_dict(torch.load(decoder_path, map_location=map_location))
    print(f"Checkpoint loaded from {checkpoint_dir}")
    return model


def log_hyperparameters(config: Dict[str, Any], log_dir: str = "logs"):
    """
    Log hyperparameters to file.

    Args:
        config: Configuration dictionary
        log_dir: Directory to save logs
    """
    os.makedirs(log_dir, exist_ok=True)

    with open(os.path.join(log_dir, "config.txt"), "w") as f:
        for key, value in config.items():
            f.write(f"{key}: {value}\n")


def log_metrics(log_dir: str, train_loss, test_loss, epoch):
    """
    Log training metrics.

    Args:
        log_dir: Directory holding training_log.txt
        train_loss: Average training loss over the epoch
        test_loss: Loss on the held-out test batch
        epoch: Current epoch (1-based)
    """
    log_file = os.path.join(log_dir, "training_log.txt")
    with open(log_file, "a") as f:
        f.write(f"Epoch {epoch}: Train Loss: {train_loss:.6f}, Test Loss: {test_loss:.6f}\n")

    print(f"Epoch {epoch}: Train Loss: {train_loss:.6f}, Test Loss: {test_loss:.6f}")


def load_config(config_path: str, default_config: dict) -> dict:
    """
    Load configuration from a Python file.

    Args:
        config_path: Path to configuration file
        default_config: Defaults that the file's DEFAULT_CONFIG overrides

    Returns:
        Configuration dictionary
    """
    config = dict(default_config)

    spec = importlib.util.spec_from_file_location("config", config_path)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)

    if hasattr(config_module, 'DEFAULT_CONFIG'):
        config.update(config_module.DEFAULT_CONFIG)

    return config


def plot_losses(log_file: str, save_path: str):
    """
    Plot training and test losses from training log.

    Args:
        log_file: Path to training log file
        save_path: Path to save the plot
    """
    train_losses = []
    test_losses = []
    epochs = []

    with open(log_file, 'r') as f:
        for line in f:
            if line.startswith('Epoch'):
                # "Epoch X: Train Loss: 0.123456, Test Loss: 0.123456"
                parts = line.strip().split(':')
                epochs.append(int(parts[0].split()[1]))
                train_losses.append(float(parts[2].split(',')[0]))
                test_losses.append(float(parts[3]))

    plt.figure(figsize=(10, 5))
    plt.plot(epochs, train_losses, label='Training Loss')
    plt.plot(epochs, test_losses, label='Test Loss')
    plt.xlabel('Epochs')
    plt.ylabel('Negative ELBO')
    plt.title('Training and Test Loss Over Time')
    plt.legend()
    plt.grid(True)

    plt.savefig(save_path)
    plt.close()
