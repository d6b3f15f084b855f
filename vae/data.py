"""
Binarized MNIST loading and minibatching.

Images are stored feature-first: a dataset split is a (784, N) float tensor
of zeros and ones, with labels kept alongside as an (N,) integer tensor.
"""

import torch
from torchvision import datasets

IMAGE_SIZE = 28
NUM_PIXELS = IMAGE_SIZE * IMAGE_SIZE
HALF_PIXELS = NUM_PIXELS // 2


def binarize(images: torch.Tensor, threshold: float = 0.5) -> torch.Tensor:
    """
    Flatten uint8 greyscale images and threshold them to {0, 1}.

    Args:
        images: Tensor of shape (N, 28, 28) with values in [0, 255]
        threshold: Cutoff applied after scaling to [0, 1]

    Returns:
        Float tensor of shape (784, N)
    """
    greyscale = images.reshape(images.shape[0], -1).float() / 255.0
    return (greyscale > threshold).float().t().contiguous()


def _load_split(data_dir: str, train: bool, size: int, threshold: float, download: bool):
    dataset = datasets.MNIST(root=data_dir, train=train, download=download)
    if size > len(dataset.data):
        split = "train" if train else "test"
        raise ValueError(f"Requested {size} {split} images but MNIST only has {len(dataset.data)}")

    images = binarize(dataset.data[:size], threshold)
    labels = torch.as_tensor(dataset.targets[:size]).long()
    return images, labels


def load_binarized_mnist(data_dir: str = "data", train_size: int = 10000,
                         test_size: int = 10000, threshold: float = 0.5,
                         download: bool = True):
    """
    Load MNIST and binarize it.

    Args:
        data_dir: Root directory for the torchvision download
        train_size: Number of training images to keep
        test_size: Number of test images to keep
        threshold: Binarization threshold on [0, 1] pixel intensities
        download: Whether torchvision may download missing files

    Returns:
        ((train_x, train_labels), (test_x, test_labels)) with
        train_x of shape (784, train_size) and train_labels of shape (train_size,)
    """
    print("Loading MNIST dataset...")
    train_x, train_labels = _load_split(data_dir, True, train_size, threshold, download)
    test_x, test_labels = _load_split(data_dir, False, test_size, threshold, download)

    print(f"Training samples: {train_x.shape[1]}")
    print(f"Test samples: {test_x.shape[1]}")
    return (train_x, train_labels), (test_x, test_labels)


def batch_data(x: torch.Tensor, batch_size: int = 100, shuffle: bool = True,
               generator: torch.Generator = None):
    """
    Shuffle columns of x and split them into fixed-size minibatches.

    A trailing remainder smaller than batch_size is dropped.

    Args:
        x: Data of shape (D, N)
        batch_size: Number of columns per batch
        shuffle: Whether to permute columns first
        generator: Optional generator for the permutation

    Returns:
        List of tensors of shape (D, batch_size)
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    num_examples = x.shape[1]
    if shuffle:
        order = torch.randperm(num_examples, generator=generator).to(x.device)
    else:
        order = torch.arange(num_examples, device=x.device)

    num_batches = num_examples // batch_size
    return [x[:, order[i * batch_size:(i + 1) * batch_size]] for i in range(num_batches)]


def top_half(x: torch.Tensor) -> torch.Tensor:
    """Pixel rows 0-13 of an image, or of every column of a batch."""
    return x[:HALF_PIXELS]


def bottom_half(x: torch.Tensor) -> torch.Tensor:
    """Pixel rows 14-27 of an image, or of every column of a batch."""
    return x[HALF_PIXELS:]
