#!/usr/bin/env python
# -*- coding: utf-8 -*-

'''
author = Michael Garancher
date: 2023-09-01
description:

	This script extracts latent topics from movie plot summaries with LDA.

	Movie plots - Topic Extraction
	--------------------------------------------
	1. Build the document-term matrix
	2. Score candidate topic counts
	3. Fit the final topic model
	4. Expose gamma (document-topic) and beta (topic-term) posteriors

	The final number of topics is chosen by a human reading the metric chart;
	nothing in this module picks it automatically.

'''

# Standard library
import logging
from typing import Dict, List, Optional, Tuple, Union, Any, Iterable

# Third-party libraries
import pandas as pd
import numpy as np
import joblib
from scipy import sparse
from scipy.special import rel_entr

# NLP libraries
from sklearn.feature_extraction.text import CountVectorizer
from sklearn.decomposition import LatentDirichletAllocation
from sklearn.metrics.pairwise import cosine_similarity

from CreateDataset import ConfigError, DataError



# Constants
DEFAULT_TOPIC_RANGE = (2, 15)
DEFAULT_METRICS = ('Griffiths2004', 'CaoJuan2009', 'Arun2010', 'Deveaud2014')
DEFAULT_METHOD = 'batch'
DEFAULT_SEED = 19680801
DEFAULT_N_TOPICS = 8
DEFAULT_MAX_ITER = 100
DEFAULT_N_WORKERS = 1
DEFAULT_TOP_N_TERMS = 10
LEARNING_METHODS = ('batch', 'online')


class ModelError(Exception):
	"""Base class for model-related exceptions"""
	pass


class DocumentTermMatrix:
	"""Raw term counts, documents x vocabulary"""

	def __init__(self, counts: sparse.spmatrix, documents: Iterable, terms: Iterable[str]):
		self.counts = sparse.csr_matrix(counts)
		self.documents = pd.Index(list(documents), name='document')
		self.terms = np.asarray(list(terms), dtype=object)
		if self.counts.shape != (len(self.documents), len(self.terms)):
			raise DataError(f"Matrix shape {self.counts.shape} does not match "
							f"{len(self.documents)} documents x {len(self.terms)} terms")

	@property
	def shape(self) -> Tuple[int, int]:
		return self.counts.shape

	def row_sums(self) -> pd.Series:
		return pd.Series(np.asarray(self.counts.sum(axis=1)).ravel(), index=self.documents, name='n')

	def to_frame(self) -> pd.DataFrame:
		"""Sparse pandas view, for inspection."""
		return pd.DataFrame.sparse.from_spmatrix(self.counts, index=self.documents, columns=self.terms)

	def check(self) -> None:
		"""Fail on a matrix a topic model cannot be fitted on."""
		n_docs, n_terms = self.shape
		if n_docs == 0:
			raise DataError("Document-term matrix has no documents")
		if n_terms == 0:
			raise DataError("Document-term matrix has an empty vocabulary")


class MatrixBuilder:
	"""Turn a cleaned corpus into a document-term matrix"""

	@staticmethod
	def build(corpus: pd.Series) -> DocumentTermMatrix:
		"""Count whitespace tokens of already normalized documents."""
		if corpus is None or len(corpus) == 0:
			raise DataError("Cannot build a document-term matrix from an empty corpus")

		# Text is cleaned upstream: split only, so row sums match the cleaned token counts
		vectorizer = CountVectorizer(analyzer=str.split)
		try:
			counts = vectorizer.fit_transform(corpus.fillna('').astype(str))
		except ValueError as e:
			raise DataError(f"Empty vocabulary after cleaning: {e}") from e

		dtm = DocumentTermMatrix(counts, corpus.index, vectorizer.get_feature_names_out())
		logging.info(f"Document-term matrix: {dtm.shape[0]} documents x {dtm.shape[1]} terms, {dtm.counts.nnz} non-zero cells")
		return dtm


def validate_topic_count(n_topics: int, n_terms: int, minimum: int = 1) -> None:
	"""Reject topic counts that cannot be fitted on the vocabulary."""
	if isinstance(n_topics, bool) or not isinstance(n_topics, (int, np.integer)):
		raise ConfigError(f"Topic count must be an integer, got {n_topics!r}")
	if n_topics < minimum:
		raise ConfigError(f"Topic count must be at least {minimum}, got {n_topics}")
	if n_topics > n_terms:
		raise ConfigError(f"Topic count {n_topics} exceeds the {n_terms} available terms")


def model_params(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
	"""LatentDirichletAllocation keyword arguments from the run configuration."""
	config = config or {}
	method = config.get('METHOD', DEFAULT_METHOD)
	if method not in LEARNING_METHODS:
		raise ConfigError(f"Unknown inference method '{method}', expected one of {LEARNING_METHODS}")
	params = {
		'learning_method': method,
		'max_iter': config.get('MAX_ITER', DEFAULT_MAX_ITER),
		'random_state': config.get('SEED', DEFAULT_SEED),
		'n_jobs': 1
	}
	if config.get('DOC_TOPIC_PRIOR') is not None:
		params['doc_topic_prior'] = config['DOC_TOPIC_PRIOR']
	if config.get('TOPIC_WORD_PRIOR') is not None:
		params['topic_word_prior'] = config['TOPIC_WORD_PRIOR']
	return params


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
	return matrix / matrix.sum(axis=1, keepdims=True)


def _pairs(k: int) -> Tuple[np.ndarray, np.ndarray]:
	return np.triu_indices(k, k=1)


def griffiths2004(lda: LatentDirichletAllocation, counts: sparse.spmatrix) -> float:
	"""Corpus log-likelihood (variational bound), higher is better."""
	return float(lda.score(counts))


def caojuan2009(lda: LatentDirichletAllocation, counts: sparse.spmatrix) -> float:
	"""Mean pairwise cosine similarity between topics, lower is better."""
	beta = _normalize_rows(lda.components_)
	k = beta.shape[0]
	similarity = cosine_similarity(beta)
	return float(similarity[_pairs(k)].sum() / (k * (k - 1) / 2))


def arun2010(lda: LatentDirichletAllocation, counts: sparse.spmatrix) -> float:
	"""Symmetric KL divergence between topic-term singular values and document topic mass, lower is better."""
	beta = _normalize_rows(lda.components_)
	gamma = lda.transform(counts)
	lengths = np.asarray(counts.sum(axis=1)).ravel()

	cm1 = np.linalg.svd(beta, compute_uv=False)
	cm2 = lengths @ gamma / np.abs(lengths).max()
	size = min(len(cm1), len(cm2))
	cm1 = np.maximum(cm1[:size], np.finfo(float).tiny)
	cm2 = np.maximum(cm2[:size], np.finfo(float).tiny)
	return float(rel_entr(cm1, cm2).sum() + rel_entr(cm2, cm1).sum())


def deveaud2014(lda: LatentDirichletAllocation, counts: sparse.spmatrix) -> float:
	"""Mean pairwise divergence between topics, higher is better."""
	beta = _normalize_rows(lda.components_)
	if (beta == 0).any():
		beta = beta + np.finfo(float).tiny
	k = beta.shape[0]
	total = 0.0
	for i, j in zip(*_pairs(k)):
		total += 0.5 * rel_entr(beta[i], beta[j]).sum() + 0.5 * rel_entr(beta[j], beta[i]).sum()
	return float(total / (k * (k - 1)))


METRICS: Dict[str, Any] = {
	'Griffiths2004': griffiths2004,
	'CaoJuan2009': caojuan2009,
	'Arun2010': arun2010,
	'Deveaud2014': deveaud2014
}

METRIC_DIRECTIONS: Dict[str, str] = {
	'Griffiths2004': 'maximize',
	'CaoJuan2009': 'minimize',
	'Arun2010': 'minimize',
	'Deveaud2014': 'maximize'
}


def _score_topic_count(counts: sparse.spmatrix, n_topics: int, metrics: List[str],
					   params: Dict[str, Any]) -> Dict[str, float]:
	lda = LatentDirichletAllocation(n_components=n_topics, **params)
	lda.fit(counts)
	return {metric: METRICS[metric](lda, counts) for metric in metrics}


class TopicCountSelector:
	"""Score a range of candidate topic counts"""

	def __init__(self, config: Optional[Dict[str, Any]] = None):
		self.config = config or {}
		self.topic_range = self.config.get('TOPIC_RANGE', DEFAULT_TOPIC_RANGE)
		self.metrics = list(self.config.get('METRICS', DEFAULT_METRICS))
		self.n_workers = self.config.get('N_WORKERS', DEFAULT_N_WORKERS)
		self.results: Optional[pd.DataFrame] = None

	def candidates(self, topics: Optional[Union[Tuple[int, int], Iterable[int]]] = None) -> List[int]:
		"""Expand an inclusive (start, stop) range, or take an explicit list of counts."""
		topics = self.topic_range if topics is None else topics
		if isinstance(topics, tuple) and len(topics) == 2:
			start, stop = topics
			candidates = list(range(start, stop + 1))
		else:
			candidates = sorted(set(topics))
		if not candidates:
			raise ConfigError(f"Empty topic range: {topics}")
		return candidates

	def evaluate(self, dtm: DocumentTermMatrix,
				 topics: Optional[Union[Tuple[int, int], Iterable[int]]] = None) -> pd.DataFrame:
		"""Fit one model per candidate k and score it with every metric."""
		dtm.check()
		unknown = [metric for metric in self.metrics if metric not in METRICS]
		if unknown or not self.metrics:
			raise ConfigError(f"Unknown metrics {unknown}, expected some of {list(METRICS)}")

		candidates = self.candidates(topics)
		# Every candidate is checked up front: the sweep fails before fitting anything
		for n_topics in candidates:
			validate_topic_count(n_topics, dtm.shape[1], minimum=2)

		params = model_params(self.config)
		logging.info(f"Scoring {len(candidates)} topic counts ({candidates[0]}-{candidates[-1]}) with {', '.join(self.metrics)}")

		scores = joblib.Parallel(n_jobs=self.n_workers)(
			joblib.delayed(_score_topic_count)(dtm.counts, n_topics, self.metrics, params)
			for n_topics in candidates
		)

		results = pd.DataFrame(scores, index=pd.Index(candidates, name='topics'), columns=self.metrics)
		for n_topics, row in results.iterrows():
			logging.info(f"k={n_topics}: " + ', '.join(f"{metric}={value:.4f}" for metric, value in row.items()))

		self.results = results
		return results


class TopicPosterior:
	"""Gamma and beta posteriors of a fitted model"""

	def __init__(self, gamma: pd.DataFrame, beta: pd.DataFrame):
		self.gamma = gamma
		self.beta = beta

	@property
	def n_topics(self) -> int:
		return self.beta.shape[0]

	def tidy_gamma(self) -> pd.DataFrame:
		"""One row per (document, topic)."""
		return (
			self.gamma.rename_axis(index='document', columns='topic')
			.stack().rename('gamma').reset_index()
		)

	def tidy_beta(self) -> pd.DataFrame:
		"""One row per (topic, term)."""
		return (
			self.beta.rename_axis(index='topic', columns='term')
			.stack().rename('beta').reset_index()
		)

	def dominant_topics(self) -> pd.Series:
		"""Highest probability topic of every document."""
		return self.gamma.idxmax(axis=1).rename('topic')

	def top_terms(self, n: int = DEFAULT_TOP_N_TERMS) -> pd.DataFrame:
		"""Top n terms of each topic by beta, ties broken by term."""
		ranked = self.tidy_beta().sort_values(
			['topic', 'beta', 'term'], ascending=[True, False, True], kind='mergesort'
		)
		return ranked.groupby('topic', sort=True).head(n).reset_index(drop=True)

	def topic_names(self, n: int = 5) -> Dict[int, str]:
		"""Descriptive names for topics based on top terms."""
		names = {}
		for topic, group in self.top_terms(n).groupby('topic'):
			names[topic] = f"Topic {topic}: {' '.join(group['term'])}"
		return names


class TopicModeler:
	"""LDA topic modeling"""

	def __init__(self, config: Optional[Dict[str, Any]] = None):
		self.config = config or {}
		self.model: Optional[LatentDirichletAllocation] = None
		self.posterior: Optional[TopicPosterior] = None

	def create_model(self, n_topics: int) -> LatentDirichletAllocation:
		return LatentDirichletAllocation(n_components=n_topics, **model_params(self.config))

	def fit(self, dtm: DocumentTermMatrix, n_topics: Optional[int] = None) -> TopicPosterior:
		"""Fit LDA with a fixed seed and return its posteriors."""
		n_topics = self.config.get('N_TOPICS', DEFAULT_N_TOPICS) if n_topics is None else n_topics
		dtm.check()
		validate_topic_count(n_topics, dtm.shape[1])

		logging.info(f'Fitting LDA model with {n_topics} topics')
		self.model = self.create_model(n_topics)
		try:
			self.model.fit(dtm.counts)
			doc_topic = self.model.transform(dtm.counts)
		except ValueError as e:
			raise ModelError(f"LDA fit failed: {e}") from e

		topics = pd.RangeIndex(1, n_topics + 1, name='topic')
		gamma = pd.DataFrame(_normalize_rows(doc_topic), index=dtm.documents, columns=topics)
		beta = pd.DataFrame(_normalize_rows(self.model.components_), index=topics, columns=pd.Index(dtm.terms, name='term'))
		if not (np.isfinite(gamma.values).all() and np.isfinite(beta.values).all()):
			raise ModelError("Degenerate posterior: non-finite probabilities")

		self.posterior = TopicPosterior(gamma, beta)

		# Log the distribution of topics
		topic_counts = self.posterior.dominant_topics().value_counts().sort_index()
		logging.info(f"Topic distribution: {dict(topic_counts)}")
		return self.posterior
