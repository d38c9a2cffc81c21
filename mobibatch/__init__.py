"""mobibatch - concurrent batch conversion of EPUB and FB2 e-books to MOBI."""

__version__ = "0.1.0"
