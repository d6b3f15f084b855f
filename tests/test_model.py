"""Encoder, decoder and VAE shapes and likelihood behaviour."""
import math

import torch

from vae.model import Decoder, Encoder


def test_encoder_batched_and_single_shapes():
    encoder = Encoder(num_pixels=784, hidden_dim=16, latent_dim=2)
    x = torch.randint(0, 2, (784, 5)).float()

    mean, log_std = encoder(x)
    assert mean.shape == (2, 5)
    assert log_std.shape == (2, 5)

    mean_single, log_std_single = encoder(x[:, 0])
    assert mean_single.shape == (2,)
    assert torch.allclose(mean_single, mean[:, 0], atol=1e-6)
    assert torch.allclose(log_std_single, log_std[:, 0], atol=1e-6)


def test_decoder_outputs_probabilities():
    decoder = Decoder(latent_dim=2, hidden_dim=16)
    probs = decoder(torch.randn(2, 4))

    assert probs.shape == (784, 4)
    assert torch.all((probs >= 0) & (probs <= 1))
    assert decoder(torch.randn(2)).shape == (784,)


def test_decoder_logits_are_finite_when_saturated():
    decoder = Decoder(latent_dim=2, hidden_dim=16, eps=1e-6)
    output_layer = decoder.net[2]
    with torch.no_grad():
        output_layer.weight.zero_()
        output_layer.bias[:392] = 1000.0
        output_layer.bias[392:] = -1000.0

    z = torch.randn(2, 3)
    probs = decoder(z)
    assert torch.all(probs[:392] == 1.0)
    assert torch.all(probs[392:] == 0.0)

    logits = decoder.logits(z)
    assert torch.all(torch.isfinite(logits))
    limit = math.log((1 - 1e-6) / 1e-6)
    assert torch.allclose(logits[:392], torch.full_like(logits[:392], limit), rtol=1e-2)
    assert torch.allclose(logits[392:], torch.full_like(logits[392:], -limit), rtol=1e-2)


def test_log_likelihood_finite_for_saturated_decoder(small_vae):
    with torch.no_grad():
        small_vae.decoder.net[2].bias.fill_(1000.0)
    x = torch.zeros(784, 2)
    z = torch.randn(2, 2)

    assert torch.all(torch.isfinite(small_vae.log_likelihood(x, z)))


def test_log_likelihood_batch_matches_single(small_vae):
    x = torch.randint(0, 2, (784, 4)).float()
    z = torch.randn(2, 4)

    batched = small_vae.log_likelihood(x, z)
    single = torch.stack([small_vae.log_likelihood(x[:, i], z[:, i]) for i in range(4)])

    assert batched.shape == (4,)
    assert torch.allclose(batched, single, atol=1e-4)


def test_joint_log_density_adds_prior(small_vae):
    x = torch.randint(0, 2, (784, 3)).float()
    z = torch.zeros(2, 3)

    joint = small_vae.joint_log_density(x, z)
    likelihood = small_vae.log_likelihood(x, z)

    assert torch.allclose(joint - likelihood, torch.full((3,), -math.log(2 * math.pi)), atol=1e-5)


def test_forward_and_sample_shapes(small_vae):
    x = torch.randint(0, 2, (784, 6)).float()

    z, mean, log_std = small_vae(x)
    assert z.shape == mean.shape == log_std.shape == (2, 6)

    samples = small_vae.sample(num_samples=3)
    assert samples.shape == (784, 3)
    assert not samples.requires_grad

    assert torch.equal(small_vae.get_latent_representation(x), mean)
