"""
brmacro_pipeline.pipelines — End-to-end pipeline orchestrators.

    from brmacro_pipeline.pipelines import ingest

    result = await ingest.run(["all"], lookback="24M")
"""
