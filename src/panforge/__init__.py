"""panforge -- build many pandoc outputs from one Markdown document, in parallel.

Core modules:
    config     -- Runtime settings via pydantic-settings (PANFORGE_* env vars) and
                  loguru console setup. CLI flags are passed as kwargs.
    cli        -- Click CLI: default convert command plus ``init`` and ``check``.
    runner     -- Input handling (file or stdin), configuration layering, one run.
    layers     -- YAML front matter / default config loading and first-present-wins
                  lookup across configuration layers.
    formats    -- Target -> pandoc format resolution, format -> extension table,
                  target list determination.
    naming     -- Output filename templates ({title}, {date}, {ext}, ...).
    sanitize   -- Slugification and platform-aware filename sanitization.
    overwrite  -- Overwrite policy and interactive confirmation.
    args       -- Option bag -> pandoc argv, with the CLI's own flags reserved.
    planner    -- Resolves one target into a job (format, options, absolute path).
    scheduler  -- Bounded parallel job execution with serialized prompts and
                  command log; first failure becomes the run error.
    executor   -- Execution port (CommandExecutor) and its subprocess implementation.
    watch      -- watchdog-based rebuild loop.
    deps       -- External tool presence checks.
    scaffold   -- Starter config / Markdown generation.
"""

__version__ = "0.1.0"
