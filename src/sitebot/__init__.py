"""Chat-driven site bot.

This package listens to a chat channel and turns a small command vocabulary
into GitHub work:
- Approving one of the fixed site options opens an issue and asks a question
- The free-text answer is recorded on the issue
- "build now" commits a static scaffold on a branch and opens a pull request
- "merge" merges that pull request
- Session state is kept in memory or as a JSON file in the repository
"""
