from novelbridge.processor.transformers.base import BaseTransformer, EpubDocument
from novelbridge.processor.transformers.generic import GenericTransformer
from novelbridge.processor.transformers.lightnovel_crawler import LightnovelCrawlerTransformer
from novelbridge.processor.transformers.novel_downloader import NovelDownloaderTransformer
from novelbridge.processor.transformers.registry import TransformerRegistry

__all__ = [
    "BaseTransformer",
    "EpubDocument",
    "GenericTransformer",
    "LightnovelCrawlerTransformer",
    "NovelDownloaderTransformer",
    "TransformerRegistry",
]
