from .user import User, AdminUser, ApiAccessUser
from .category import Category, Location
from .channel import Channel, Subscription
from .article import Article, ArticleCategory, ArticleImage
from .engagement import ArticleView, Reaction
from .comment import Comment
from .api_key import ApiKey

__all__ = [
    "User",
    "AdminUser",
    "ApiAccessUser",
    "Category",
    "Location",
    "Channel",
    "Subscription",
    "Article",
    "ArticleCategory",
    "ArticleImage",
    "ArticleView",
    "Reaction",
    "Comment",
    "ApiKey"
]
