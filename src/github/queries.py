"""GraphQL documents for issues, discussions and their comment continuations."""

from __future__ import annotations

PAGE_INFO_FRAG = """
fragment PageInfoFields on PageInfo { hasNextPage endCursor }
"""

ISSUE_FRAGS = """
fragment IssueCommentFields on IssueComment {
  id body createdAt url
  author { login }
}
fragment IssueFields on Issue {
  id title body url createdAt updatedAt
  reactions(content: THUMBS_UP) { totalCount }
  labels(first: 100) { nodes { name } }
  comments(first: $pageSize) {
    nodes { ...IssueCommentFields }
    pageInfo { ...PageInfoFields }
  }
}
""" + PAGE_INFO_FRAG

DISCUSSION_COMMENT_FRAGS = """
fragment DiscussionCommentFields on DiscussionComment {
  id body createdAt url
  author { login }
}
fragment DiscussionThreadFields on DiscussionComment {
  ...DiscussionCommentFields
  replies(first: $replies) {
    nodes { ...DiscussionCommentFields }
    pageInfo { ...PageInfoFields }
  }
}
""" + PAGE_INFO_FRAG

DISCUSSION_FRAGS = """
fragment DiscussionFields on Discussion {
  id title url createdAt updatedAt
  answer { id }
  comments(first: $pageSize) {
    nodes { ...DiscussionThreadFields }
    pageInfo { ...PageInfoFields }
  }
}
""" + DISCUSSION_COMMENT_FRAGS

ISSUES_QUERY = """
query Issues($owner: String!, $name: String!, $after: String, $labels: [String!], $pageSize: Int!) {
  repository(owner: $owner, name: $name) {
    issues(first: $pageSize, after: $after, states: OPEN, labels: $labels) {
      nodes { ...IssueFields }
      pageInfo { ...PageInfoFields }
    }
  }
}
""" + ISSUE_FRAGS

ISSUE_NODE_QUERY = """
query IssueNode($id: ID!, $pageSize: Int!) {
  node(id: $id) {
    __typename
    ... on Issue { ...IssueFields }
  }
}
""" + ISSUE_FRAGS

ISSUE_COMMENTS_QUERY = """
query IssueComments($id: ID!, $after: String, $pageSize: Int!) {
  node(id: $id) {
    ... on Issue {
      comments(first: $pageSize, after: $after) {
        nodes {
          id body createdAt url
          author { login }
        }
        pageInfo { ...PageInfoFields }
      }
    }
  }
}
""" + PAGE_INFO_FRAG

DISCUSSIONS_QUERY = """
query Discussions($owner: String!, $name: String!, $after: String, $pageSize: Int!, $replies: Int!) {
  repository(owner: $owner, name: $name) {
    discussions(first: $pageSize, after: $after) {
      nodes { ...DiscussionFields }
      pageInfo { ...PageInfoFields }
    }
  }
}
""" + DISCUSSION_FRAGS

DISCUSSION_COMMENTS_QUERY = """
query DiscussionComments($id: ID!, $after: String, $pageSize: Int!, $replies: Int!) {
  node(id: $id) {
    ... on Discussion {
      comments(first: $pageSize, after: $after) {
        nodes { ...DiscussionThreadFields }
        pageInfo { ...PageInfoFields }
      }
    }
  }
}
""" + DISCUSSION_COMMENT_FRAGS

DISCUSSION_REPLIES_QUERY = """
query DiscussionReplies($id: ID!, $after: String, $pageSize: Int!) {
  node(id: $id) {
    ... on DiscussionComment {
      replies(first: $pageSize, after: $after) {
        nodes {
          id body createdAt url
          author { login }
        }
        pageInfo { ...PageInfoFields }
      }
    }
  }
}
""" + PAGE_INFO_FRAG

__all__ = [
    "ISSUES_QUERY",
    "ISSUE_NODE_QUERY",
    "ISSUE_COMMENTS_QUERY",
    "DISCUSSIONS_QUERY",
    "DISCUSSION_COMMENTS_QUERY",
    "DISCUSSION_REPLIES_QUERY",
]
