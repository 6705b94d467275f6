#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
CreateDataset.py
author: Michael Garancher
date: 2021-09-01
Description:
	This script loads a table of movie plot summaries and prepares it for topic modeling.
	Each plot goes through two independent normalization paths:
		a) a tidy word-count table (document, word, n) used for inspection
		b) a cleaned text corpus used to build the document-term matrix
Notes:
	- Accepts .csv and .xlsx sources
	- Stopwords come from scikit-learn's english list, extendable via config
	- The two paths are not meant to produce identical tokens
"""

# Std library
import re, logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Union

# Third party
import pandas as pd
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS



# Pandas display options
pd.set_option("display.max_colwidth", 100)


# Configuration
CONFIG:Dict[str, str] = {
	"TITLE_COLUMN": 'Title',
	"TEXT_COLUMN": 'Plot'
}

SOURCE_FORMATS = ('.csv', '.xlsx')

WORD_PATTERN =re.compile(r"[a-z0-9']+")
PUNCTUATION_PATTERN = re.compile(r'[^\w\s]|_')
WHITESPACE_PATTERN = re.compile(r'\s+')


class DataError(Exception):
	"""Base class for data-related exceptions"""
	pass

class ConfigError(Exception):
	"""Base class for configuration-related exceptions"""
	pass


class Toolbox(object):
	"""
	Utility functions for text processing.
	Static helpers shared by both normalization paths.
	"""
	@staticmethod
	def stopwords(extra:Optional[Iterable[str]]=None) -> FrozenSet[str]:
		"""Return the english stopword set, optionally extended."""
		if not extra:
			return ENGLISH_STOP_WORDS
		return ENGLISH_STOP_WORDS.union(word.lower() for word in extra)

	@staticmethod
	def token_count(text) -> int:
		"""Count whitespace separated tokens."""
		if pd.isna(text):
			return 0
		return len(str(text).split())

	@staticmethod
	def normalize(text, stopwords:FrozenSet[str]) -> str:
		"""Lowercase, delete punctuation, drop stopwords and collapse whitespace."""
		if pd.isna(text):
			return ''
		text = str(text).lower()
		# Deleting (not replacing) punctuation keeps "well-known" as one token
		text = PUNCTUATION_PATTERN.sub('', text)
		words = [word for word in text.split() if word not in stopwords]
		return WHITESPACE_PATTERN.sub(' ', ' '.join(words)).strip()

	@staticmethod
	def unique_ids(titles:pd.Series) -> pd.Index:
		"""Build document identifiers from titles, falling back to the row index."""
		ids = [
			str(title).strip() if not pd.isna(title) and str(title).strip() else str(idx)
			for idx, title in titles.items()
		]
		# Suffixes skip every id already taken, original titles included
		reserved = set(ids)
		taken:Set[str] = set()
		counters:Dict[str, int] = {}
		result = []
		for doc_id in ids:
			if doc_id in taken:
				n = counters.get(doc_id, 1)
				candidate = doc_id
				while candidate in taken or candidate in reserved:
					n += 1
					candidate = f'{doc_id} ({n})'
				counters[doc_id] = n
				doc_id = candidate
			taken.add(doc_id)
			result.append(doc_id)
		return pd.Index(result, name='document')



class PlotCorpus(object):
	"""
	Holds the movie plots of one run.
	Loads the source table and exposes the word-count table and the cleaned corpus.
	"""
	def __init__(self, data:pd.DataFrame, config:Optional[Dict]=None):
		self.config = config or CONFIG
		self.title_column = self.config.get('TITLE_COLUMN', CONFIG['TITLE_COLUMN'])
		self.text_column = self.config.get('TEXT_COLUMN', CONFIG['TEXT_COLUMN'])
		self.stopwords = Toolbox.stopwords(self.config.get('EXTRA_STOPWORDS'))

		for column in (self.title_column, self.text_column):
			if column not in data.columns:
				raise DataError(f"Required column '{column}' not found. Available columns: {', '.join(map(str, data.columns))}")

		documents = data.reset_index(drop=True)
		documents.index = Toolbox.unique_ids(documents[self.title_column])
		self.documents:pd.DataFrame = documents

	def __len__(self) -> int:
		return len(self.documents)

	@property
	def texts(self) -> pd.Series:
		return self.documents[self.text_column]

	@classmethod
	def load_source(cls, filepath:Union[str,Path], config:Optional[Dict]=None) -> 'PlotCorpus':
		"""Load the plot table from a .csv or .xlsx file."""
		config = config or CONFIG
		filepath = Path(filepath)
		text_column = config.get('TEXT_COLUMN', CONFIG['TEXT_COLUMN'])
		suffix = filepath.suffix.lower()
		if suffix not in SOURCE_FORMATS:
			raise DataError(f"Unsupported source format '{suffix}', expected one of {', '.join(SOURCE_FORMATS)}")
		try:
			if suffix == '.xlsx':
				data = pd.read_excel(filepath, engine='openpyxl')
			else:
				data = pd.read_csv(filepath)
		except FileNotFoundError as e:
			raise DataError(f"Data file not found: {filepath}") from e
		except pd.errors.EmptyDataError as e:
			raise DataError(f"Data file is empty: {filepath}") from e
		except pd.errors.ParserError as e:
			raise DataError(f"Error parsing data file: {e}") from e

		if data.empty:
			raise DataError('Empty dataset from source file.')
		if text_column not in data.columns:
			raise DataError(f"Required column '{text_column}' not found. Available columns: {', '.join(map(str, data.columns))}")

		# Check for empty plots
		empty = data[text_column].isna() | (data[text_column].astype(str).str.strip() == '')
		if empty.any():
			logging.warning(f"Dataset contains {empty.sum()} empty values in '{text_column}' column")
			data = data[~empty]
			logging.info(f"Dropped {empty.sum()} rows with empty plots")
		if data.empty:
			raise DataError(f"No usable rows in '{text_column}' column.")

		corpus = cls(data, config)
		logging.info(f"Loaded {len(corpus)} movie plots from {filepath}")
		return corpus

	def word_counts(self) -> pd.DataFrame:
		"""Tidy per-document word counts, stopwords excluded."""
		words = (
			self.texts.fillna('').astype(str).str.lower()
			.str.findall(WORD_PATTERN)
			.explode()
			.dropna()
		)
		words = words[~words.isin(self.stopwords)]
		counts = (
			words.rename('word').rename_axis('document').reset_index()
			.groupby(['document', 'word'], sort=False).size()
			.reset_index(name='n')
			.sort_values(['n', 'word'], ascending=[False, True], kind='mergesort')
			.reset_index(drop=True)
		)
		logging.info(f"Counted {counts['word'].nunique()} distinct words across {len(self)} documents")
		return counts

	def clean_corpus(self) -> pd.Series:
		"""Normalized documents ready for the document-term matrix."""
		cleaned = self.texts.apply(Toolbox.normalize, stopwords=self.stopwords)
		cleaned.name = 'text'
		return cleaned

	def top_words(self, n:int=10, counts:Optional[pd.DataFrame]=None) -> List[str]:
		"""Most frequent words over the whole corpus, reusing a word_counts() table when given."""
		counts = self.word_counts() if counts is None else counts
		totals = counts.groupby('word')['n'].sum()
		totals = totals.sort_index().sort_values(ascending=False, kind='mergesort')
		return totals.head(n).index.tolist()
