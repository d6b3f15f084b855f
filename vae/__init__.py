"""
Variational Autoencoder (VAE) module for binarized MNIST.

This module provides a fully-connected VAE trained by amortized variational
inference, plus non-amortized posterior fitting for completing partially
observed digits and tools for exploring the 2-D latent space.
"""
