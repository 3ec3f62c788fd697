import logging
import os
import jwt

from booking_engine.models.users import UserRole

JWT_SECRET = os.environ.get("JWT_SECRET")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")


class AuthorizationFailed(Exception):
    pass


def _generate_policy(principal_id, effect, resource, context=None):
    auth_response = {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
    }

    if context:
        auth_response["context"] = {
            k: str(v) for k, v in context.items()
        }

    return auth_response


def _get_stage_arn(method_arn: str) -> str:
    parts = method_arn.split("/")
    return "/".join(parts[:2]) + "/*/*"


def _extract_token(event) -> str:
    headers = event.get("headers") or {}
    token = (
        event.get("authorizationToken")
        or headers.get("Authorization")
        or headers.get("authorization")
    )
    if not token:
        raise AuthorizationFailed("Missing Authorization header")
    return token.removeprefix("Bearer ").strip()


def _normalise_role(raw) -> str:
    try:
        return UserRole(str(raw or "").upper()).value
    except ValueError:
        return UserRole.USER.value


def lambda_handler(event, context):
    try:
        token = _extract_token(event)

        decoded = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp"]},
        )

        user_id = decoded.get("user_id")
        if not user_id:
            raise AuthorizationFailed("Missing user_id in token")

        resource = _get_stage_arn(event["methodArn"])

        return _generate_policy(
            principal_id=user_id,
            effect="Allow",
            resource=resource,
            context={
                "user_id": user_id,
                "email": decoded.get("email", ""),
                "role": _normalise_role(decoded.get("role")),
            },
        )

    except jwt.ExpiredSignatureError:
        logger.warning("Authorization failed: Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Authorization failed: Invalid token {e}")
    except Exception as e:
        logger.warning(f"Authorization failed: {e}")

    return _generate_policy(
        principal_id="unauthorized",
        effect="Deny",
        resource=_get_stage_arn(event["methodArn"]),
    )
