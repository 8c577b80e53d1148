"""Entry point for CLI invocation via python -m."""

from ModuleRepo.RepoSync.cli import app

if __name__ == "__main__":
    app()
