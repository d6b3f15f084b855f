"""
Default configuration for VAE training and exploration on binarized MNIST.
"""

# Model configuration
MODEL_CONFIG = {
    'num_pixels': 784,
    'hidden_dim': 500,
    'latent_dim': 2,
}

# Data configuration
DATA_CONFIG = {
    'train_size': 10000,
    'test_size': 10000,
    'binarize_threshold': 0.5,
}

# Training configuration
TRAINING_CONFIG = {
    'num_epochs': 100,
    'batch_size': 100,
    'learning_rate': 1e-3,
    'optimizer_type': 'adam', # 'adam' or 'sgd'
    'eval_every': 10,
    'seed': 42,
}

# Posterior inference configuration
INFERENCE_CONFIG = {
    'posterior_num_itrs': 200,
    'posterior_lr': 1e-2,
    'posterior_num_samples': 10,
    'posterior_init_mean': None, # e.g. [2.0, -2.0]
    'posterior_example_index': 0,
    'interpolation_steps': 10,
    'interpolation_pairs': [(0, 1), (3, 8), (4, 9)],
    'num_prior_samples': 10,
}

# Paths configuration
PATHS_CONFIG = {
    'checkpoint_dir': 'trained_models',
    'log_dir': 'logs',
    'data_dir': 'data',
    'results_dir': 'results',
    'experiment_name': 'vae_mnist',
}

# Combine all configurations
DEFAULT_CONFIG = {
    **MODEL_CONFIG,
    **DATA_CONFIG,
    **TRAINING_CONFIG,
    **INFERENCE_CONFIG,
    **PATHS_CONFIG,
}
