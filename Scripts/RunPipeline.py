#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""
author: Michael Garancher
date: 2021-09-01
Description:
	Movie plot topic pipeline
	This script performs the following operations:
	1. Loads the plot table and cleans the text (CreateDataset.py)
	2. Builds the document-term matrix and scores topic counts 2-15 (ModelDataset.py)
	3. Fits LDA with the chosen number of topics (ModelDataset.py)
	4. Renders the charts (PlotDataset.py)
Notes:
	N_TOPICS is picked by reading topic_count_metrics.png, then set below.
	To run the pipeline, execute the following command:
	$ python3 Scripts/RunPipeline.py [path/to/plots.csv]
"""


# Standard library
import sys, warnings, logging
from pathlib import Path
from typing import Any, Dict, Optional

from CreateDataset import PlotCorpus, Toolbox
from ModelDataset import MatrixBuilder, TopicCountSelector, TopicModeler
from PlotDataset import TopicVisualizer


# Suppress warnings
warnings.filterwarnings("ignore")


# Project configuration
ROOT_DIR: Path = Path(__file__).parents[1].resolve()
CONFIG: Dict[str, Any] = {
	"SOURCE": ROOT_DIR / 'Data' / 'movie_plots.csv',
	"OUTPUT_DIR": ROOT_DIR / 'Data' / 'output',
	"TITLE_COLUMN": 'Title',
	"TEXT_COLUMN": 'Plot',
	"EXTRA_STOPWORDS": [],
	"TOPIC_RANGE": (2, 15),
	"METRICS": ['Griffiths2004', 'CaoJuan2009', 'Arun2010', 'Deveaud2014'],
	"METHOD": 'batch',
	"SEED": 19680801,
	"N_TOPICS": 8,
	"MAX_ITER": 100,
	"N_WORKERS": 1,
	"TOP_N_TERMS": 10,
	"WORDCLOUD_MIN_WEIGHT": 0.002,
	"WORDCLOUD_COLORMAP": 'Dark2',
	"PLOT_STYLE": 'ggplot',
	"DPI": 100
}

# Create directories if they don't exist
CONFIG['OUTPUT_DIR'].mkdir(parents=True, exist_ok=True)

# Logging
logging.basicConfig(
	level=logging.INFO,
	format='%(asctime)s - %(levelname)s - %(message)s',
	handlers=[
		logging.StreamHandler(),
		logging.FileHandler(CONFIG['OUTPUT_DIR'] / 'plot_topics.log', mode='w')
	]
)



def run(config: Dict[str, Any]) -> Dict[str, Any]:
	"""Execute every stage once, in order. Any failure propagates."""
	corpus = PlotCorpus.load_source(config['SOURCE'], config)

	# Inspection table, not used for modeling
	word_counts = corpus.word_counts()
	logging.info(f"Most frequent words: {', '.join(corpus.top_words(10, word_counts))}")

	cleaned = corpus.clean_corpus()
	removed = corpus.texts.apply(Toolbox.token_count).sum() - cleaned.apply(Toolbox.token_count).sum()
	logging.info(f"Cleaning removed {removed} tokens")

	dtm = MatrixBuilder.build(cleaned)

	visualizer = TopicVisualizer(config)
	scores = TopicCountSelector(config).evaluate(dtm)
	visualizer.plot_topic_count_metrics(scores)

	posterior = TopicModeler(config).fit(dtm, config['N_TOPICS'])
	logging.info(f"Identified topics: {list(posterior.topic_names().values())}")

	visualizer.plot_projection(posterior)
	visualizer.plot_gamma_histogram(posterior)
	visualizer.plot_beta_bars(posterior)
	visualizer.plot_wordcloud(posterior)

	return {
		'corpus': corpus,
		'word_counts': word_counts,
		'dtm': dtm,
		'scores': scores,
		'posterior': posterior
	}


def main(config: Optional[Dict[str, Any]] = None) -> None:
	"""Main execution function for the topic pipeline."""
	settings = dict(CONFIG)
	settings.update(config or {})
	if config is None and len(sys.argv) > 1:
		settings['SOURCE'] = Path(sys.argv[1])

	logging.info('Starting movie plot topic pipeline')
	try:
		run(settings)
		logging.info('Topic pipeline completed.')
	except Exception as e:
		logging.error(f'Error: {e}', exc_info=True)  # w/ stack trace
		logging.info('Topic pipeline failed.')
		sys.exit(1)
	finally:
		logging.shutdown()



if __name__ == "__main__":
	main()
