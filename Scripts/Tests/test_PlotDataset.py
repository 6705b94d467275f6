import shutil
import tempfile
import unittest

from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd

from CreateDataset import ConfigError, DataError
from ModelDataset import TopicPosterior
from PlotDataset import TopicVisualizer, aggregate_term_weights


def make_posterior(n_topics=3, n_docs=6):
	topics = pd.RangeIndex(1, n_topics + 1, name='topic')
	terms = pd.Index([f'term{i:02d}' for i in range(12)], name='term')
	gamma = pd.DataFrame(
		[[(d + t) % n_topics + 1 for t in range(n_topics)] for d in range(n_docs)],
		index=pd.Index([f'doc {d}' for d in range(n_docs)], name='document'), columns=topics, dtype=float
	)
	beta = pd.DataFrame(
		[[(t * 5 + i) % 12 + 1 for i in range(len(terms))] for t in range(n_topics)],
		index=topics, columns=terms, dtype=float
	)
	gamma = gamma.div(gamma.sum(axis=1), axis=0)
	beta = beta.div(beta.sum(axis=1), axis=0)
	return TopicPosterior(gamma, beta)


class TestAggregateTermWeights(unittest.TestCase):

	def test_sum_across_topics(self):
		top_terms = pd.DataFrame({
			'topic': [1, 1, 2, 3],
			'term': ['love', 'war', 'ship', 'love'],
			'beta': [0.02, 0.01, 0.03, 0.015]
		})
		weights = aggregate_term_weights(top_terms)
		# Summed, not the max of 0.02 and 0.015
		self.assertAlmostEqual(weights['love'], 0.035)
		self.assertAlmostEqual(weights['war'], 0.01)
		self.assertEqual(list(weights.index), ['love', 'ship', 'war'])

	def test_empty(self):
		weights = aggregate_term_weights(pd.DataFrame(columns=['topic', 'term', 'beta']))
		self.assertTrue(weights.empty)


class TestTopicVisualizer(unittest.TestCase):
	def setUp(self):
		self.test_dir = Path(tempfile.mkdtemp())
		self.visualizer = TopicVisualizer({'OUTPUT_DIR': self.test_dir, 'WORDCLOUD_MIN_WEIGHT': 0.0})
		self.posterior = make_posterior()

	def tearDown(self):
		plt.close('all')
		shutil.rmtree(self.test_dir)

	def test_topic_count_metrics(self):
		results = pd.DataFrame(
			{'Griffiths2004': [-900.0, -850.0, -870.0], 'CaoJuan2009': [0.3, 0.2, 0.25],
			 'Arun2010': [4.0, 3.0, 3.5], 'Deveaud2014': [1.0, 1.0, 1.0]},
			index=pd.Index([2, 3, 4], name='topics')
		)
		fig = self.visualizer.plot_topic_count_metrics(results)
		self.assertEqual(len(fig.axes), 2)
		self.assertEqual(len(fig.axes[0].get_lines()), 2)
		self.assertEqual(len(fig.axes[1].get_lines()), 2)
		self.assertTrue((self.test_dir / 'topic_count_metrics.png').exists())

	def test_topic_count_metrics_empty(self):
		with self.assertRaises(DataError):
			self.visualizer.plot_topic_count_metrics(pd.DataFrame())

	def test_projection(self):
		fig = self.visualizer.plot_projection(self.posterior)
		self.assertTrue((self.test_dir / 'gamma_pca.png').exists())
		n_points = sum(len(c.get_offsets()) for c in fig.axes[0].collections)
		self.assertEqual(n_points, 6)

	def test_projection_needs_two_topics(self):
		posterior = make_posterior(n_topics=1)
		with self.assertRaises(ConfigError):
			self.visualizer.plot_projection(posterior)

	def test_gamma_histogram(self):
		fig = self.visualizer.plot_gamma_histogram(self.posterior)
		visible = [ax for ax in fig.axes if ax.get_visible()]
		self.assertEqual(len(visible), 3)
		self.assertTrue((self.test_dir / 'gamma_histogram.png').exists())

	def test_beta_bars(self):
		fig = self.visualizer.plot_beta_bars(make_posterior(n_topics=5))
		visible = [ax for ax in fig.axes if ax.get_visible()]
		self.assertEqual(len(visible), 5)
		for ax in visible:
			self.assertEqual(len(ax.patches), 10)
			widths = [patch.get_width() for patch in ax.patches]
			self.assertEqual(widths, sorted(widths, reverse=True))
		self.assertTrue((self.test_dir / 'beta_top_terms.png').exists())

	def test_wordcloud(self):
		self.visualizer.plot_wordcloud(self.posterior)
		self.assertTrue((self.test_dir / 'wordcloud.png').exists())

	def test_wordcloud_floor(self):
		visualizer = TopicVisualizer({'WORDCLOUD_MIN_WEIGHT': 1.0})
		with self.assertRaises(DataError):
			visualizer.plot_wordcloud(self.posterior)

	def test_no_output_dir(self):
		visualizer = TopicVisualizer()
		self.assertIsNone(visualizer.save(plt.figure(), 'unused'))



if __name__ == "__main__":
	unittest.main()
