"""
Reporting: terminal formatters and file exports.

  formatters — ASCII renderers for trees, path status and recommendations
  export     — recommendation JSON and answered-path Parquet exports
"""
