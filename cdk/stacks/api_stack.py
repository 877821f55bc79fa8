from aws_cdk import (
    Stack,
    Duration,
    CfnOutput,
    RemovalPolicy,
    aws_apigateway as apigw,
    aws_lambda as _lambda,
    aws_dynamodb as ddb,
    aws_logs as logs,
)
from constructs import Construct

class WaitlistApiStack(Stack):
    def __init__(self, scope: Construct, construct_id: str,
                 table_name: str = "waitlist",
                 allowed_origins: str = "*",
                 app_env: str = "production",
                 enable_xray: bool = True,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # email is the partition key; the conditional put relies on it
        table = ddb.Table(self, "WaitlistTable",
                          table_name=table_name,
                          partition_key=ddb.Attribute(name="email", type=ddb.AttributeType.STRING),
                          billing_mode=ddb.BillingMode.PAY_PER_REQUEST,
                          point_in_time_recovery=True,
                          removal_policy=RemovalPolicy.RETAIN)

        waitlist_fn = _lambda.Function(self, "WaitlistFn",
                                       runtime=_lambda.Runtime.PYTHON_3_12,
                                       handler="waitlist.lambda_handler.handler",
                                       code=_lambda.Code.from_asset("../functions"),
                                       environment={
                                           "WAITLIST_TABLE": table.table_name,
                                           "ALLOWED_ORIGINS": allowed_origins,
                                           "APP_ENV": app_env,
                                       },
                                       timeout=Duration.seconds(10),
                                       tracing=_lambda.Tracing.ACTIVE if enable_xray else _lambda.Tracing.DISABLED,
                                       log_retention=logs.RetentionDays.TWO_WEEKS)

        # put only; the function never reads the table
        table.grant(waitlist_fn, "dynamodb:PutItem")

        api = apigw.RestApi(self, "WaitlistApi",
                            deploy_options=apigw.StageOptions(metrics_enabled=True, logging_level=apigw.MethodLoggingLevel.INFO, tracing_enabled=enable_xray),
                            cloud_watch_role=True)
        integration = apigw.LambdaIntegration(waitlist_fn, proxy=True)

        # /api/waitlist (CORS preflight is answered by the function)
        waitlist = api.root.add_resource("api").add_resource("waitlist")
        waitlist.add_method("POST", integration)
        waitlist.add_method("OPTIONS", integration)

        # /health
        api.root.add_resource("health").add_method("GET", integration)

        CfnOutput(self, "WaitlistEndpoint", value=f"{api.url}api/waitlist")
        CfnOutput(self, "WaitlistTableName", value=table.table_name)

        self.api_execute_url = f"{api.url}"
        self.table_name = table.table_name
