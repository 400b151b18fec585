"""draftdex: Pokemon reference-dataset synthesis and query engine."""
