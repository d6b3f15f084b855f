"""Amortized training loop, checkpointing and configuration."""
import math
import os

import pytest
import torch

from vae.train import VAETrainer, get_default_config, load_trained_model
from vae.utils import create_optimizer, load_config, plot_losses


@pytest.fixture
def config(tmp_path):
    config = get_default_config()
    config.update({
        'hidden_dim': 64,
        'num_epochs': 10,
        'batch_size': 50,
        'learning_rate': 1e-2,
        'eval_every': 5,
        'seed': 0,
        'device': 'cpu',
        'checkpoint_dir': str(tmp_path / 'trained_models'),
        'log_dir': str(tmp_path / 'logs'),
        'results_dir': str(tmp_path / 'results'),
    })
    return config


def test_training_lowers_test_loss(config, synthetic_data):
    trainer = VAETrainer(config, data=synthetic_data)
    initial_loss = trainer.evaluate()

    history = trainer.train()
    final_loss = trainer.evaluate()

    assert math.isfinite(final_loss)
    assert final_loss < initial_loss
    assert [epoch for epoch, _, _ in history] == [5, 10]
    assert trainer.global_step == 10 * (1000 // 50)


def test_training_writes_checkpoints_and_log(config, synthetic_data):
    trainer = VAETrainer(config, data=synthetic_data)
    trainer.train()

    checkpoint_dir = config['checkpoint_dir']
    assert os.path.exists(os.path.join(checkpoint_dir, 'encoder.pth'))
    assert os.path.exists(os.path.join(checkpoint_dir, 'decoder.pth'))

    log_file = os.path.join(trainer.log_dir, 'training_log.txt')
    with open(log_file) as f:
        lines = f.readlines()
    assert len(lines) == 2
    assert lines[0].startswith('Epoch 5:')

    plot_path = os.path.join(trainer.log_dir, 'loss_plot.png')
    plot_losses(log_file, plot_path)
    assert os.path.exists(plot_path)

    restored = load_trained_model(config, device=torch.device('cpu'))
    for (name, original), (_, loaded) in zip(trainer.model.state_dict().items(),
                                             restored.state_dict().items()):
        assert torch.equal(original, loaded), name


def test_non_finite_loss_is_fatal(config, synthetic_data):
    trainer = VAETrainer(config, data=synthetic_data)
    with torch.no_grad():
        trainer.model.decoder.net[0].weight.fill_(float('nan'))

    with pytest.raises(FloatingPointError):
        trainer.train_step(trainer.test_batch)


def test_create_optimizer_rejects_unknown_type(small_vae):
    assert isinstance(create_optimizer(small_vae, 'adam'), torch.optim.Adam)
    with pytest.raises(ValueError):
        create_optimizer(small_vae, 'rmsprop')


def test_load_config_overrides_defaults(tmp_path):
    config_file = tmp_path / 'my_config.py'
    config_file.write_text("DEFAULT_CONFIG = {'num_epochs': 3, 'latent_dim': 2}\n")

    defaults = get_default_config()
    config = load_config(str(config_file), defaults)

    assert config['num_epochs'] == 3
    assert config['batch_size'] == defaults['batch_size']
    assert defaults['num_epochs'] == 100


@pytest.mark.parametrize('name', ['default_config_VAE.py', 'test_config.py'])
def test_shipped_config_files_load(name):
    config_path = os.path.join(os.path.dirname(__file__), '..', 'configs', name)
    defaults = get_default_config()

    config = load_config(config_path, defaults)

    assert set(defaults) <= set(config)
    assert config['latent_dim'] == 2
    assert config['batch_size'] == 100
    if name == 'default_config_VAE.py':
        assert {k: v for k, v in config.items() if k != 'device'} == \
            {k: v for k, v in defaults.items() if k != 'device'}


def test_train_split_smaller_than_batch_is_rejected(config, synthetic_data):
    (train_x, train_labels), test = synthetic_data
    small = ((train_x[:, :30], train_labels[:30]), test)

    with pytest.raises(ValueError, match="train split"):
        VAETrainer(config, data=small)
    assert not os.path.exists(config['checkpoint_dir'])


def test_test_split_smaller_than_batch_is_rejected(config, synthetic_data):
    train, (test_x, test_labels) = synthetic_data
    small = (train, (test_x[:, :20], test_labels[:20]))

    with pytest.raises(ValueError, match="test split"):
        VAETrainer(config, data=small)
