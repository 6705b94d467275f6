#!/usr/bin/env python
# -*- coding: utf-8 -*-

'''
author = Michael Garancher
date: 2023-09-01
description:

	Charts for the movie plot topic model.

	1. Topic-count metrics (one line per metric)
	2. PCA projection of the documents, colored by dominant topic
	3. Gamma histogram, one panel per topic
	4. Top terms per topic by beta
	5. Word cloud of the top terms, weights summed across topics

'''

# Standard library
import logging
from math import ceil
from pathlib import Path
from typing import Dict, Optional, Any

# Third-party libraries
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.decomposition import PCA
from wordcloud import WordCloud

from CreateDataset import ConfigError, DataError
from ModelDataset import METRIC_DIRECTIONS, DEFAULT_SEED, DEFAULT_TOP_N_TERMS, TopicPosterior



# Constants
DEFAULT_PLOT_STYLE = 'ggplot'
DEFAULT_WORDCLOUD_MIN_WEIGHT = 0.002
DEFAULT_WORDCLOUD_COLORMAP = 'Dark2'
DEFAULT_DPI = 100
PANEL_COLUMNS = 4


def aggregate_term_weights(top_terms: pd.DataFrame) -> pd.Series:
	"""Sum beta per term over every topic's top list."""
	if top_terms.empty:
		return pd.Series(dtype=float, name='weight')
	weights = top_terms.groupby('term')['beta'].sum().rename('weight')
	return weights.sort_index().sort_values(ascending=False, kind='mergesort')


def _grid(n_panels: int, figsize_per_panel=(3.2, 2.6), **kwargs):
	n_cols = min(PANEL_COLUMNS, n_panels)
	n_rows = ceil(n_panels / n_cols)
	fig, axes = plt.subplots(
		n_rows, n_cols,
		figsize=(figsize_per_panel[0] * n_cols, figsize_per_panel[1] * n_rows),
		squeeze=False, **kwargs
	)
	axes = axes.ravel()
	for ax in axes[n_panels:]:
		ax.set_visible(False)
	return fig, axes[:n_panels]


class TopicVisualizer:
	"""Render the charts of one run"""

	def __init__(self, config: Optional[Dict[str, Any]] = None):
		self.config = config or {}
		self.output_dir: Optional[Path] = self.config.get('OUTPUT_DIR')
		self.style = self.config.get('PLOT_STYLE', DEFAULT_PLOT_STYLE)
		self.dpi = self.config.get('DPI', DEFAULT_DPI)
		self.top_n = self.config.get('TOP_N_TERMS', DEFAULT_TOP_N_TERMS)
		self.min_weight = self.config.get('WORDCLOUD_MIN_WEIGHT', DEFAULT_WORDCLOUD_MIN_WEIGHT)
		self.colormap = self.config.get('WORDCLOUD_COLORMAP', DEFAULT_WORDCLOUD_COLORMAP)
		self.seed = self.config.get('SEED', DEFAULT_SEED)

	def save(self, fig: plt.Figure, name: str) -> Optional[Path]:
		"""Write the figure as PNG when an output directory is configured."""
		if self.output_dir is None:
			return None
		output_dir = Path(self.output_dir)
		output_dir.mkdir(parents=True, exist_ok=True)
		path = output_dir / f'{name}.png'
		fig.savefig(path, dpi=self.dpi, bbox_inches='tight')
		plt.close(fig)
		logging.info(f"Figure saved to {path}")
		return path

	def plot_topic_count_metrics(self, results: pd.DataFrame) -> plt.Figure:
		"""Metric score vs. number of topics, minimize and maximize panels."""
		if results.empty:
			raise DataError("No topic-count scores to plot")

		# Min-max normalize so metrics with different scales share an axis
		spread = (results.max() - results.min()).replace(0, 1)
		normalized = (results - results.min()) / spread

		with plt.style.context(self.style):
			fig, axes = plt.subplots(2, 1, figsize=(9, 6), sharex=True)
			for ax, direction in zip(axes, ('minimize', 'maximize')):
				metrics = [m for m in normalized.columns if METRIC_DIRECTIONS.get(m) == direction]
				for metric in metrics:
					ax.plot(normalized.index, normalized[metric], marker='o', label=metric)
				ax.set_ylabel(direction)
				ax.set_ylim(-0.05, 1.05)
				if metrics:
					ax.legend(loc='best', fontsize='small')
			axes[-1].set_xlabel('number of topics')
			axes[-1].set_xticks(list(normalized.index))
			fig.suptitle('Topic-count metrics')
			fig.tight_layout()
		self.save(fig, 'topic_count_metrics')
		return fig

	def plot_projection(self, posterior: TopicPosterior) -> plt.Figure:
		"""Documents projected to 2D from gamma, colored by dominant topic."""
		gamma = posterior.gamma
		if min(gamma.shape) < 2:
			raise ConfigError(f"PCA projection needs at least 2 documents and 2 topics, got {gamma.shape}")

		coords = PCA(n_components=2).fit_transform(gamma.values)
		labels = posterior.dominant_topics()
		cmap = plt.get_cmap('tab10' if posterior.n_topics <= 10 else 'tab20')

		with plt.style.context(self.style):
			fig, ax = plt.subplots(figsize=(8, 6))
			for i, topic in enumerate(gamma.columns):
				mask = (labels == topic).values
				if mask.any():
					ax.scatter(coords[mask, 0], coords[mask, 1], s=25, alpha=0.8,
							   color=cmap(i % cmap.N), label=f'Topic {topic}')
			ax.set_xlabel('PC1')
			ax.set_ylabel('PC2')
			ax.set_title('Documents by dominant topic')
			ax.legend(loc='best', fontsize='small', title='topic')
			fig.tight_layout()
		self.save(fig, 'gamma_pca')
		return fig

	def plot_gamma_histogram(self, posterior: TopicPosterior, bins: int = 20) -> plt.Figure:
		"""Distribution of gamma over documents, one panel per topic."""
		with plt.style.context(self.style):
			fig, axes = _grid(posterior.n_topics, sharex=True, sharey=False)
			for ax, topic in zip(axes, posterior.gamma.columns):
				ax.hist(posterior.gamma[topic].values, bins=bins, range=(0, 1))
				ax.set_title(f'Topic {topic}', fontsize='small')
			fig.supxlabel('gamma')
			fig.supylabel('documents')
			fig.tight_layout()
		self.save(fig, 'gamma_histogram')
		return fig

	def plot_beta_bars(self, posterior: TopicPosterior) -> plt.Figure:
		"""Top terms per topic, descending beta within each panel."""
		top_terms = posterior.top_terms(self.top_n)
		with plt.style.context(self.style):
			fig, axes = _grid(posterior.n_topics, figsize_per_panel=(3.6, 3.0))
			for ax, (topic, group) in zip(axes, top_terms.groupby('topic', sort=True)):
				ax.barh(group['term'], group['beta'])
				ax.invert_yaxis()
				ax.set_title(f'Topic {topic}', fontsize='small')
				ax.tick_params(axis='both', labelsize='x-small')
			fig.supxlabel('beta')
			fig.tight_layout()
		self.save(fig, 'beta_top_terms')
		return fig

	def plot_wordcloud(self, posterior: TopicPosterior) -> plt.Figure:
		"""Word cloud of the top terms, weights summed across topics."""
		weights = aggregate_term_weights(posterior.top_terms(self.top_n))
		weights = weights[weights >= self.min_weight]
		if weights.empty:
			raise DataError(f"No term reaches the minimum word cloud weight {self.min_weight}")

		cloud = WordCloud(
			width=800, height=600,
			background_color='white',
			colormap=self.colormap,
			random_state=self.seed,
			relative_scaling=0.5
		).generate_from_frequencies(weights.to_dict())

		fig, ax = plt.subplots(figsize=(8, 6))
		ax.imshow(cloud, interpolation='bilinear')
		ax.axis('off')
		fig.tight_layout(pad=0)
		self.save(fig, 'wordcloud')
		return fig
